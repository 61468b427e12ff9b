from chatrelay.models.chat import Chat, Message
from chatrelay.models.setting import Setting
from chatrelay.models.user import User, UserSession

__all__ = ["Chat", "Message", "Setting", "User", "UserSession"]
