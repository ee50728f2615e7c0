"""Key management service core: configuration, chain registry, double-signing protection and client threads."""

__version__ = "0.1.0"