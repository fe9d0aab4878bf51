"""Tournament scoring, registration, settlement and lifecycle scheduling."""
