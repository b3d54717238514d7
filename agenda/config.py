import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()


class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "development")
    api_base_url: str = os.getenv("AGENDA_API_BASE_URL", "https://backbarbearialopez.onrender.com")
    api_timeout: float = float(os.getenv("AGENDA_API_TIMEOUT", "10"))
    login_path: str = os.getenv("AGENDA_LOGIN_PATH", "/auterota/login")
    appointments_path: str = os.getenv("AGENDA_APPOINTMENTS_PATH", "/auterota/agendamentos")
    storage_path: Optional[str] = os.getenv("AGENDA_STORAGE_PATH")
    page_size: int = int(os.getenv("AGENDA_PAGE_SIZE", "20"))
    log_level: str = os.getenv("AGENDA_LOG_LEVEL", "INFO")


settings = Settings()
