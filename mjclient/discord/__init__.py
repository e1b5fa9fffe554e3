"""Discord gateway and interaction plumbing."""
