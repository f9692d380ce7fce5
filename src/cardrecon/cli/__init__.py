"""Command-line interface for cardrecon."""
