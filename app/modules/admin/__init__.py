# Admin module
from app.modules.admin.services import AdminService
from app.modules.admin.router import router

__all__ = ["AdminService", "router"]
