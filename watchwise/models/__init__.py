# Import all models so SQLAlchemy can discover them for db.create_all()
# Order matters: FK targets must be imported before dependents.
from watchwise.models.user import User
from watchwise.models.profile import Profile
from watchwise.models.item import Item
from watchwise.models.user_item import UserItem, ItemStatus
from watchwise.models.social import Reaction, Comment
from watchwise.models.suppression import Hidden, MutedUser

__all__ = [
    "User", "Profile",
    "Item",
    "UserItem", "ItemStatus",
    "Reaction", "Comment",
    "Hidden", "MutedUser",
]
