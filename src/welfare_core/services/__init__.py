"""Business services for the welfare claim lifecycle."""
