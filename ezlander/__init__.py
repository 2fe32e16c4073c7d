"""ezLander: natural-language calendar and email assistant."""
