"""
Upload Environment

Reads the process-wide defaults used by every upload call: the default
proxy, the tunables in UploadSettings, and the AWS variables used to build
credentials for the storage testing bucket.
"""

import hashlib
import os
import random
from typing import Dict, List, Optional

from .exceptions import EnvironmentValidationError
from .models import StorageCredentials, UploadSettings, mask_secret

DEFAULT_HOST_URL = "https://api.tiles.mapbox.com"

TEST_BUCKET = "mapbox-upload-testing"
TEST_KEY_PREFIX = "_pending/test/"


class UploadEnvironment:
    """Detects upload defaults and test credentials from the environment"""

    PROXY_VAR = "HTTP_PROXY"

    TEST_CREDENTIAL_VARS = [
        "AWS_ACCESS_KEY_ID",
        "AWS_SECRET_ACCESS_KEY",
    ]

    OPTIONAL_VARS = {
        "MAPUPLOAD_REQUEST_TIMEOUT": (60.0, float),
        "MAPUPLOAD_PROGRESS_INTERVAL": (0.1, float),
        "MAPUPLOAD_PART_SIZE": (5 * 1024 * 1024, int),
        "MAPUPLOAD_MAX_CONCURRENCY": (4, int),
    }

    def default_proxy(self) -> Optional[str]:
        """Proxy used when a request does not name one"""
        return os.getenv(self.PROXY_VAR) or None

    def default_host_url(self) -> str:
        return DEFAULT_HOST_URL

    def get_settings(self) -> UploadSettings:
        """Build UploadSettings, falling back to defaults for bad values"""
        settings_kwargs = {}
        for var_name, (default_value, var_type) in self.OPTIONAL_VARS.items():
            env_value = os.getenv(var_name)
            value = default_value
            if env_value:
                try:
                    value = var_type(env_value)
                except ValueError:
                    value = default_value
                if value <= 0:
                    value = default_value
            settings_kwargs[self._env_var_to_param(var_name)] = value

        return UploadSettings(**settings_kwargs)

    def get_missing_test_variables(self) -> List[str]:
        """Get list of missing variables needed for test credentials"""
        return [var for var in self.TEST_CREDENTIAL_VARS if not os.getenv(var)]

    def make_test_credentials(self) -> StorageCredentials:
        """
        Generate credentials that write to the storage testing bucket.

        Objects in the testing bucket are removed daily by a lifecycle rule,
        so every call gets a fresh random key under ``_pending/test/``.

        Raises:
            EnvironmentValidationError: AWS_ACCESS_KEY_ID or
                AWS_SECRET_ACCESS_KEY is not set
        """
        missing_vars = self.get_missing_test_variables()
        if missing_vars:
            raise EnvironmentValidationError(
                f"Missing required environment variables: {', '.join(missing_vars)}",
                missing_vars=missing_vars,
            )

        digest = hashlib.md5(str(random.random()).encode()).hexdigest()
        return StorageCredentials(
            bucket=TEST_BUCKET,
            key=TEST_KEY_PREFIX + digest,
            access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
            session_token=os.getenv("AWS_SESSION_TOKEN") or None,
        )

    def _env_var_to_param(self, env_var: str) -> str:
        """Convert environment variable name to parameter name"""
        # MAPUPLOAD_PART_SIZE -> part_size
        return env_var.replace("MAPUPLOAD_", "").lower()

    def get_environment_summary(self) -> Dict:
        """Get summary of environment configuration for debugging"""
        summary = {
            "host_url": self.default_host_url(),
            "proxy": self.default_proxy(),
            "test_credentials_available": not self.get_missing_test_variables(),
            "detected_variables": {},
        }

        # Show which variables are set (but mask sensitive values)
        for var in self.TEST_CREDENTIAL_VARS + ["AWS_SESSION_TOKEN"]:
            summary["detected_variables"][var] = mask_secret(os.getenv(var))

        for var in self.OPTIONAL_VARS:
            value = os.getenv(var)
            if value:
                summary["detected_variables"][var] = value

        return summary
