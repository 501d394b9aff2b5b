"""Example API used by the generator tests."""
