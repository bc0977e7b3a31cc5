"""Sample project used by the keelson test suite."""
