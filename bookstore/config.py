"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class Config:
    """Application configuration."""

    # Catalog service
    API_URL = os.getenv("BOOKSTORE_API_URL", "https://ebookstore-hqlf.onrender.com/api")

    # Object store
    CDN_CLOUD_NAME = os.getenv("BOOKSTORE_CDN_CLOUD_NAME", "dafyhvdns")
    CDN_VIEW_TEMPLATE = os.getenv(
        "BOOKSTORE_CDN_VIEW_TEMPLATE",
        "https://res.cloudinary.com/{cloud}/image/upload/{object_ref}"
    )
    CDN_DOWNLOAD_TEMPLATE = os.getenv(
        "BOOKSTORE_CDN_DOWNLOAD_TEMPLATE",
        "https://res.cloudinary.com/{cloud}/raw/upload/fl_attachment/{object_ref}"
    )

    # Access resolution: "direct" probes the object store, "brokered" asks the service
    RESOLVER_STRATEGY = os.getenv("BOOKSTORE_RESOLVER", "direct")
    PREFER_STREAM = _env_bool("BOOKSTORE_PREFER_STREAM")

    # Uploads
    ALLOWED_EXTENSIONS = tuple(
        ext.strip().lower()
        for ext in os.getenv("BOOKSTORE_ALLOWED_EXTENSIONS", ".pdf,.epub,.doc,.docx").split(",")
        if ext.strip()
    )

    # Defaults
    DEFAULT_TIMEOUT = int(os.getenv("DEFAULT_TIMEOUT", "10"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    @property
    def VIEW_TEMPLATE(self):
        """View URL template with the cloud name filled in."""
        return self.CDN_VIEW_TEMPLATE.replace("{cloud}", self.CDN_CLOUD_NAME)

    @property
    def DOWNLOAD_TEMPLATE(self):
        """Download URL template with the cloud name filled in."""
        return self.CDN_DOWNLOAD_TEMPLATE.replace("{cloud}", self.CDN_CLOUD_NAME)
