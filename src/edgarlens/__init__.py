"""EdgarLens: SEC Form D entity resolution and funding extraction."""
