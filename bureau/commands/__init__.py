"""`run_*` implementations behind the CLI commands."""
