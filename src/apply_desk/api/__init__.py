"""HTTP and WebSocket surface of Apply Desk."""
