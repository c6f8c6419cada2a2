from .service import NotificationService, status_message

__all__ = ["NotificationService", "status_message"]
