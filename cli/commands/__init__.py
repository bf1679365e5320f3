"""attest subcommands."""
