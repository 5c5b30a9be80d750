from tokengate.models.user import User

__all__ = ["User"]
