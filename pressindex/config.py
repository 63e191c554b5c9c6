from pathlib import Path
import dotenv
import logging
import os
from typing import Optional, Dict, Any
from dataclasses import dataclass


ROOT = Path(__file__).parent.parent
DEFAULT_CONFIG_PATH = ROOT / 'sync_config.yaml'

dotenv.load_dotenv(ROOT / '.env')

# Logging configuration
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for the given name"""
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    return logger


# Splitter defaults
DEFAULT_CONTENT_LIMIT = 2000
DEFAULT_HEADING_LEVEL = 'h2'

# Bulk reindex defaults
DEFAULT_PAGE_SIZE = 100
DEFAULT_PUBLISHABLE_STATUSES = ['publish']

# Constants
VALID_ENVIRONMENTS = ['production', 'staging', 'local']
DEFAULT_ENVIRONMENT = 'staging'


def _env(name: str, environment: str) -> Optional[str]:
    return os.getenv(f'{name}_{environment.upper()}') or None


@dataclass
class ElasticsearchConfig:
    """
    Connection settings of the search index for one environment.

    Read from ``ES_*_<ENV>`` variables. An API key (``ES_API_KEY_<ENV>``)
    takes the place of username and password when set.
    """
    host: str
    username: Optional[str] = None
    password: Optional[str] = None
    api_key: Optional[str] = None
    ca_cert: Optional[str] = None
    timeout: int = 30

    @classmethod
    def from_environment(cls, environment: str) -> 'ElasticsearchConfig':
        """
        Raises:
            ValueError: naming every variable that is missing
        """
        host = _env('ES_HOST', environment)
        api_key = _env('ES_API_KEY', environment)
        username = _env('ES_USERNAME', environment)
        password = _env('ES_PASSWORD', environment) or _env('ELASTIC_PASSWORD', environment)

        suffix = environment.upper()
        missing = [] if host else [f'ES_HOST_{suffix}']
        if not api_key:
            if not username:
                missing.append(f'ES_USERNAME_{suffix}')
            if not password:
                missing.append(f'ES_PASSWORD_{suffix} or ELASTIC_PASSWORD_{suffix}')
        if missing:
            raise ValueError(f"Missing Elasticsearch settings for the {environment} environment: {', '.join(missing)}")

        timeout = _env('ES_TIMEOUT', environment)
        try:
            timeout = int(timeout) if timeout else cls.timeout
        except ValueError:
            raise ValueError(f"ES_TIMEOUT_{suffix} must be a number of seconds, got {timeout!r}")

        if api_key:
            username = password = None
        return cls(host=host, username=username, password=password, api_key=api_key,
                   ca_cert=_env('ES_CA_CERT', environment), timeout=timeout)

    def to_elasticsearch_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {'hosts': [self.host], 'request_timeout': self.timeout}
        if self.api_key:
            kwargs['api_key'] = self.api_key
        else:
            kwargs['basic_auth'] = (self.username, self.password)

        # TLS options only apply to https hosts
        if self.host.startswith('https://'):
            kwargs.update(verify_certs=bool(self.ca_cert), ca_certs=self.ca_cert, ssl_show_warn=True)
        return kwargs


def get_cms_credentials(environment: str) -> Optional[tuple]:
    """
    CMS application-password credentials for the given environment, if set.

    Without them the REST source only sees published content.
    """
    username = _env('WP_USERNAME', environment)
    password = _env('WP_APP_PASSWORD', environment)
    if username and password:
        return (username, password)
    return None
