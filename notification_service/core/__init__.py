"""Core building blocks shared by features: database, settings, services, errors."""
