"""Session-bound one-time credential issuance and verification service."""
