"""IP address management controller."""
