"""DocVault HTTP API."""
