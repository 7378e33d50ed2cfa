"""
Configuration package for callbridge.

Provides typed configuration models organized by domain, environment variable
loading, singleton access, and the shared logging setup.

### Usage Examples:

```python
from callbridge.config import get_config, load_env_file
load_env_file()
config = get_config()
print(f"Server: {config.server.host}:{config.server.port}")

from callbridge.config.logging_config import configure_logging
logger = configure_logging("my_module")
```
"""

from .env_loader import load_env_file
from .models import (
    ApplicationConfig,
    Environment,
    GeminiConfig,
    LiveSessionConfig,
    LoggingConfig,
    LogLevel,
    RecordingConfig,
    SecurityConfig,
    ServerConfig,
    TokenConfig,
    WebSocketConfig,
)
from .settings import get_config, reload_config

__all__ = [
    "load_env_file",
    "get_config",
    "reload_config",
    "ApplicationConfig",
    "Environment",
    "GeminiConfig",
    "LiveSessionConfig",
    "LoggingConfig",
    "LogLevel",
    "RecordingConfig",
    "SecurityConfig",
    "ServerConfig",
    "TokenConfig",
    "WebSocketConfig",
]
