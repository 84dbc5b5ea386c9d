"""DocVault services: uploads, downloads, files, ingestion and tenant deletion."""
