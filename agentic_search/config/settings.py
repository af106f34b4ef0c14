
import logging
from argparse import Namespace
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError
from pydantic_settings import BaseSettings

from ..errors import ConfigError
from .search_config import (
    FullTextDialect,
    LexicalBackendConfig,
    PostProcessing,
    SearchConfiguration,
    ServiceDescriptor,
    VectorBackendConfig,
    parse_connection_string,
)

logger = logging.getLogger(__name__)

DEFAULT_QDRANT_BASE_URL = "http://127.0.0.1:6333"

_REQUIRED = object()


class Settings(BaseSettings):

    qdrant_base_url: str = DEFAULT_QDRANT_BASE_URL
    qdrant_api_key: Optional[str] = None
    qdrant_collection: Optional[str] = None
    qdrant_payload_field: Optional[str] = None

    embedding_service_base_url: Optional[str] = None
    embedding_service_api_key: Optional[str] = None
    embedding_service_model: Optional[str] = None

    chat_service_base_url: Optional[str] = None
    chat_service_api_key: Optional[str] = None
    chat_service_model: Optional[str] = None

    tidb_connection: Optional[str] = None
    tidb_ssl_ca: Optional[str] = None
    tidb_table_name: Optional[str] = None
    tidb_search_field: Optional[str] = None
    tidb_return_field: Optional[str] = None
    tidb_fulltext_dialect: FullTextDialect = FullTextDialect.TIDB
    tidb_pool_size: int = 5
    tidb_pool_timeout: float = 10.0

    # Search
    lexical_score: float = 1.0
    post_processing: PostProcessing = PostProcessing.SYNTHESIZE

    # Timeouts (seconds)
    http_timeout: float = 30.0
    request_timeout: Optional[float] = None

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


def load_settings(**kwargs: Any) -> Settings:
    """Read settings from the environment and `.env`.

    Raises:
        ConfigError: If a variable holds an invalid value.
    """
    try:
        return Settings(**kwargs)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]).upper() for err in e.errors() if err["loc"])
        raise ConfigError(f"Invalid environment variable(s): {fields}") from e


def _resolve(
    env_name: str,
    env_value: Any,
    arg_name: str,
    arg_value: Any,
    default: Any = _REQUIRED,
) -> Any:
    """Pick a value: environment variable > command line > default.

    Raises:
        ConfigError: If the value is required and neither source has it.
    """
    if env_value is not None:
        logger.info(f"Using {env_name} from environment: {env_value}")
        return env_value
    if arg_value is not None:
        logger.info(f"Using {arg_name} from command line argument: {arg_value}")
        return arg_value
    if default is _REQUIRED:
        flag = "--" + arg_name.replace("_", "-")
        raise ConfigError(
            f"{env_name} environment variable or {flag} argument is required"
        )
    logger.info(f"Using {env_name} default value: {default}")
    return default


def _vector_config(settings: Settings, args: Namespace) -> tuple[VectorBackendConfig, ServiceDescriptor]:
    collection = _resolve(
        "QDRANT_COLLECTION", settings.qdrant_collection,
        "qdrant_collection", getattr(args, "qdrant_collection", None),
    )
    payload_field = _resolve(
        "QDRANT_PAYLOAD_FIELD", settings.qdrant_payload_field,
        "qdrant_payload_field", getattr(args, "qdrant_payload_field", None),
    )
    embedding_url = _resolve(
        "EMBEDDING_SERVICE_BASE_URL", settings.embedding_service_base_url,
        "embedding_service_base_url", getattr(args, "embedding_service_base_url", None),
    )

    vector = VectorBackendConfig(
        collection=collection,
        payload_field=payload_field,
        base_url=settings.qdrant_base_url,
        api_key=settings.qdrant_api_key,
    )
    embedding = ServiceDescriptor(
        base_url=embedding_url,
        api_key=settings.embedding_service_api_key,
        model=settings.embedding_service_model,
    )
    return vector, embedding


def _lexical_config(settings: Settings, args: Namespace) -> tuple[LexicalBackendConfig, ServiceDescriptor]:
    ssl_ca = _resolve(
        "TIDB_SSL_CA", settings.tidb_ssl_ca,
        "tidb_ssl_ca", getattr(args, "tidb_ssl_ca", None),
    )
    table_name = _resolve(
        "TIDB_TABLE_NAME", settings.tidb_table_name,
        "tidb_table_name", getattr(args, "tidb_table_name", None),
    )
    search_field = _resolve(
        "TIDB_SEARCH_FIELD", settings.tidb_search_field,
        "tidb_search_field", getattr(args, "tidb_search_field", None),
        default="content",
    )
    return_field = _resolve(
        "TIDB_RETURN_FIELD", settings.tidb_return_field,
        "tidb_return_field", getattr(args, "tidb_return_field", None),
        default="*",
    )
    chat_url = _resolve(
        "CHAT_SERVICE_BASE_URL", settings.chat_service_base_url,
        "chat_service_base_url", getattr(args, "chat_service_base_url", None),
    )

    if settings.tidb_connection is None:
        raise ConfigError("TIDB_CONNECTION environment variable is required")
    connection = parse_connection_string(settings.tidb_connection, Path(ssl_ca))

    lexical = LexicalBackendConfig(
        table_name=table_name,
        database=connection.database,
        connection=connection,
        search_field=search_field,
        return_field=return_field,
        dialect=settings.tidb_fulltext_dialect,
    )
    chat = ServiceDescriptor(
        base_url=chat_url,
        api_key=settings.chat_service_api_key,
        model=settings.chat_service_model,
    )
    return lexical, chat


def build_configuration(settings: Settings, args: Namespace) -> SearchConfiguration:
    """Merge environment settings and CLI arguments into a SearchConfiguration.

    Args:
        settings: Settings loaded from the environment.
        args: Parsed command line; `args.search_mode` is one of
            "qdrant", "tidb" or "search".

    Returns:
        Validated, immutable configuration.

    Raises:
        ConfigError: On a missing required value or a violated invariant.
    """
    vector = embedding = lexical = chat = None

    if args.search_mode == "qdrant":
        logger.info("Enabling vector search mode")
        vector, embedding = _vector_config(settings, args)
    elif args.search_mode == "tidb":
        logger.info("Enabling keyword search mode")
        lexical, chat = _lexical_config(settings, args)
    elif args.search_mode == "search":
        logger.info("Enabling both vector and keyword search modes")
        vector, embedding = _vector_config(settings, args)
        lexical, chat = _lexical_config(settings, args)
    else:
        raise ConfigError(f"Unknown search mode: {args.search_mode}")

    return SearchConfiguration(
        vector=vector,
        lexical=lexical,
        limit=args.limit,
        score_threshold=args.score_threshold,
        embedding_service=embedding,
        chat_service=chat,
        lexical_score=settings.lexical_score,
        post_processing=settings.post_processing,
    )
