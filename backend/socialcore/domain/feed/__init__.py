"""Feed composition and post boosts."""
