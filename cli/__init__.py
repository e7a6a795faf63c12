"""CLI package — argument parsing and console output for the plugins manager."""
