"""HTTP and WebSocket surface for shelfmind."""
