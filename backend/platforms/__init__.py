from .platform_specs import PlatformRegistry, PlatformSpec, SizeValidation

__all__ = ["PlatformRegistry", "PlatformSpec", "SizeValidation"]
