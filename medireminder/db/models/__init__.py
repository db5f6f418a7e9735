from .user import UserModel
from .medicament import MedicamentModel

__all__ = ["UserModel", "MedicamentModel"]
