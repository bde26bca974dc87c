from .base import _DynamicalSystem, _DynamicalSystemProtocol, create_rhs_system

__all__ = ["_DynamicalSystem", "_DynamicalSystemProtocol", "create_rhs_system"]
