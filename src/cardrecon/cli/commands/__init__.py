"""Click command groups registered by cardrecon.cli.main."""
