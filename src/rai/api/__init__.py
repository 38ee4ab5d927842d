"""HTTP and socket API for RAI."""
