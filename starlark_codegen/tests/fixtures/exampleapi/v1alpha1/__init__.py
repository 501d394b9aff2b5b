"""Version v1alpha1 of the example API."""
