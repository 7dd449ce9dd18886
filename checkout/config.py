import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"


@dataclass(frozen=True)
class Settings:
    database_url: str
    paypal_client_id: str
    paypal_secret: str
    paypal_base_url: str = "https://api-m.sandbox.paypal.com"
    base_url: str = "http://localhost:3000"
    brand_name: str = "Your App"
    paypal_timeout: float = 10.0
    log_level: str = "INFO"

    @property
    def return_url(self) -> str:
        return self.base_url.rstrip("/") + "/complete-order"

    @property
    def cancel_url(self) -> str:
        return self.base_url.rstrip("/") + "/cancel-order"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(dotenv_path=ENV_PATH)

        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            raise RuntimeError("DATABASE_URL is not set. Check your .env file.")

        client_id = os.getenv("PAYPAL_CLIENT_ID")
        secret = os.getenv("PAYPAL_SECRET")
        if not client_id or not secret:
            raise RuntimeError("PAYPAL_CLIENT_ID and PAYPAL_SECRET must be set.")

        return cls(
            database_url=database_url,
            paypal_client_id=client_id,
            paypal_secret=secret,
            paypal_base_url=os.getenv("PAYPAL_BASE_URL", cls.paypal_base_url),
            base_url=os.getenv("BASE_URL", cls.base_url),
            brand_name=os.getenv("PAYPAL_BRAND_NAME", cls.brand_name),
            paypal_timeout=float(os.getenv("PAYPAL_TIMEOUT", cls.paypal_timeout)),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )
