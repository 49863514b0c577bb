"""SigilMint service routers."""
