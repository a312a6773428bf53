# Shared Common Library for the reservation platform.
# Exceptions, model mixins and middleware used across services.

__version__ = "1.0.0"
