"""HTTP API for VersaBlog."""
