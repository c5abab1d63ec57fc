"""Evidence attachment storage (upload, signed download URL, delete)."""
