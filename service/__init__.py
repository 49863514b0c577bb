"""SigilMint HTTP service."""
