from app.models.base import Base
from app.models.profile import Profile, ProfileAchievement
from app.models.user import Role, User

__all__ = ["Base", "Profile", "ProfileAchievement", "Role", "User"]
