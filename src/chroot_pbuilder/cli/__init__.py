"""Command-line entry point package (chroot-pbuilder)."""
