from serene_bot.services.api import ApiClient, ApiError, api_for

__all__ = ["ApiClient", "ApiError", "api_for"]
