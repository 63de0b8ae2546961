from .routers import AuthAPI, UserAPI, PropertyAPI, ConversationAPI, UploadAPI

__all__ = ["AuthAPI", "UserAPI", "PropertyAPI", "ConversationAPI", "UploadAPI"]
