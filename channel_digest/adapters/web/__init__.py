"""Web adapter — FastAPI operator routes."""
