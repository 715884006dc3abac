"""Service layer: remote gateway and comparison analytics."""
