"""Click subcommands for the vaultchat CLI."""
