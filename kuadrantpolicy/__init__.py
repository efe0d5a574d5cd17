"""Route selection, policy validation and translation into Istio rules and AuthConfig conditions."""

__version__ = "0.1.0"
__all__ = ["authconfig", "authpolicy", "eventmappers", "istio", "ratelimit", "routing", "status"]