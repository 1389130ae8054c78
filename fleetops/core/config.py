# fleetops/core/config.py

import json
import os
from functools import lru_cache
from typing import Optional

import boto3
from pydantic_settings import BaseSettings, SettingsConfigDict

from fleetops.utils.logger import get_logger

logger = get_logger(__name__)


#
# =====================================================
#  SECRET FETCH FUNCTION (DB credentials)
# =====================================================
#


@lru_cache(maxsize=32)
def cached_secret_values(secret_id: str | None, region: str | None) -> dict:
    """
    Load a secret from AWS Secrets Manager.
    Returns {} if secret_id is not set or is an empty string.

    Each unique (secret_id, region) pair is fetched only once per process.
    """
    if not secret_id or secret_id.strip() == "":
        return {}

    region = region or os.getenv("AWS_REGION", "us-east-1")
    logger.info("Loading secret", secret_id=secret_id, region=region)

    client = boto3.client("secretsmanager", region_name=region)
    resp = client.get_secret_value(SecretId=secret_id)
    data = json.loads(resp["SecretString"])

    logger.info("Loaded secret from Secrets Manager", secret_id=secret_id)
    return data


#
# =====================================================
#                    SETTINGS CLASS
# =====================================================
#


class Settings(BaseSettings):
    """
    Application Settings
    """

    model_config = SettingsConfigDict(
        env_file=".env", extra="ignore", case_sensitive=False
    )

    environment: str = "local"
    allowed_cors_urls: str = "*"

    # AWS
    aws_region: Optional[str] = None
    db_secret_id: Optional[str] = None  # e.g. fleetops/staging/db
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    s3_bucket_name: Optional[str] = None
    attachment_prefix: str = "billing-attachments"

    # DB values (support .env)
    database_url: Optional[str] = None
    db_host: str = "localhost"
    db_user: str = "fleetops"
    db_password: str = ""
    db_database: str = "fleetops"
    db_port: int = 3306

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Reconciliation
    auto_reconcile_on_expense_save: bool = True

    # Uploads
    allowed_upload_extensions: str = ".xlsx,.xls,.csv"

    # Listings
    default_page_size: int = 20
    max_page_size: int = 100

    # Labels
    default_label_color: str = "#888888"

    #
    # ---------------------------
    #  DB ACCESS PROPERTIES
    # ---------------------------
    #
    @property
    def _db_tuple(self):
        """
        Resolve DB connection details:
        - If db_secret_id is set → use secret (DB_HOST, DB_USER, DB_PASSWORD, DB_DATABASE, DB_PORT)
        - Else → use .env values
        """
        data = cached_secret_values(self.db_secret_id, self.aws_region)

        if data:
            logger.info("DB config source: Secrets Manager", secret_id=self.db_secret_id)
        else:
            logger.debug("DB config source: .env / environment variables")

        host = data.get("DB_HOST") or self.db_host
        user = data.get("DB_USER") or self.db_user
        password = data.get("DB_PASSWORD") or self.db_password
        database = data.get("DB_DATABASE") or self.db_database
        port = int(data.get("DB_PORT") or self.db_port)

        return host, user, password, database, port

    @property
    def db_url(self) -> str:
        """Construct the synchronous database URL, honouring an explicit override."""
        if self.database_url:
            return self.database_url
        host, user, password, database, port = self._db_tuple
        return f"mysql+pymysql://{user}:{password}@{host}:{port}/{database}"

    @property
    def upload_extensions(self) -> list[str]:
        """Allowed booking upload extensions, lower-cased."""
        return [
            ext.strip().lower()
            for ext in self.allowed_upload_extensions.split(",")
            if ext.strip()
        ]


settings = Settings()
