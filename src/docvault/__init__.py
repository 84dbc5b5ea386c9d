"""DocVault - tenant-isolated document storage on a shared bucket."""
