"""Campus portal state core."""
