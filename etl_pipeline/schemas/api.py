from pydantic import BaseModel

SERVICE_NAME = "etl-pipeline"


class HealthResponse(BaseModel):
    status: str
    service: str = SERVICE_NAME
    database: str


class ReadyResponse(BaseModel):
    status: str
    service: str = SERVICE_NAME
