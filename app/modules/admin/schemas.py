from pydantic import BaseModel


# ============================================================
# Metrics Schemas
# ============================================================

class AdminMetricsResponse(BaseModel):
    customers: int
    analysts: int
    admins: int
    loans: int
