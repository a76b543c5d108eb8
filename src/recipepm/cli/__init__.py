"""Command-line interface for recipepm."""
