from .auth_api import AuthAPI
from .user_api import UserAPI
from .property_api import PropertyAPI
from .conversation_api import ConversationAPI
from .upload_api import UploadAPI

__all__ = ["AuthAPI", "UserAPI", "PropertyAPI", "ConversationAPI", "UploadAPI"]
