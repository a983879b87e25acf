"""HTTP API for audit listing, snapshot restore and scheduled tasks."""
