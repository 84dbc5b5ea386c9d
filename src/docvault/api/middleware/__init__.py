"""DocVault API middleware."""
