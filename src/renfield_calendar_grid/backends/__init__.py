"""Calendar provider backends."""
