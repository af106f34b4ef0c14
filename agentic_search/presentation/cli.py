
import argparse
import logging
import sys
from typing import Optional

from agentic_search.config.settings import build_configuration, load_settings
from agentic_search.container import configure_container
from agentic_search.errors import ConfigError
from agentic_search.presentation.mcp_server import SearchToolServer

logger = logging.getLogger(__name__)

DEFAULT_SOCKET_ADDR = "127.0.0.1:8009"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"


def _add_search_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--limit", type=int, default=10,
                        help="Maximum number of results to return")
    parser.add_argument("--score-threshold", type=float, default=0.5,
                        help="Score threshold for the results")


def _add_vector_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--qdrant-collection",
                        help="Qdrant collection to search (env: QDRANT_COLLECTION)")
    parser.add_argument("--qdrant-payload-field",
                        help="Payload field holding the document source (env: QDRANT_PAYLOAD_FIELD)")
    parser.add_argument("--embedding-service-base-url",
                        help="Embedding server base URL, e.g. https://api.openai.com/v1 "
                             "(env: EMBEDDING_SERVICE_BASE_URL)")


def _add_keyword_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--tidb-ssl-ca", help="Root CA path for TLS (env: TIDB_SSL_CA)")
    parser.add_argument("--tidb-table-name", help="Table to search (env: TIDB_TABLE_NAME)")
    parser.add_argument("--tidb-search-field",
                        help="Full-text column, default: content (env: TIDB_SEARCH_FIELD)")
    parser.add_argument("--tidb-return-field",
                        help="Column(s) to return, default: * (env: TIDB_RETURN_FIELD)")
    parser.add_argument("--chat-service-base-url",
                        help="Chat server base URL, e.g. https://api.openai.com/v1 "
                             "(env: CHAT_SERVICE_BASE_URL)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentic-search", description="Agentic Search MCP server"
    )
    parser.add_argument("-s", "--socket-addr", default=DEFAULT_SOCKET_ADDR,
                        help="Socket address to bind to")
    parser.add_argument("-t", "--transport", choices=["sse", "stream-http"],
                        default="stream-http", help="Transport type to use")

    modes = parser.add_subparsers(dest="search_mode", required=True,
                                  help="Search mode to enable")

    qdrant = modes.add_parser("qdrant", help="Enable vector search only")
    _add_vector_flags(qdrant)
    _add_search_flags(qdrant)

    tidb = modes.add_parser("tidb", help="Enable keyword search only")
    _add_keyword_flags(tidb)
    _add_search_flags(tidb)

    search = modes.add_parser("search", help="Enable both vector and keyword search")
    _add_vector_flags(search)
    _add_keyword_flags(search)
    _add_search_flags(search)

    return parser


def parse_socket_addr(socket_addr: str) -> tuple[str, int]:
    """Split "host:port".

    Raises:
        ConfigError: If the port is missing or not a number.
    """
    host, _, port = socket_addr.rpartition(":")
    if not host or not port.isdigit():
        raise ConfigError(f"Invalid socket address: {socket_addr!r}")
    return host, int(port)


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings()
        logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)
        config = build_configuration(settings, args)
        host, port = parse_socket_addr(args.socket_addr)
        container = configure_container(config, settings)
        server = container.resolve(SearchToolServer)
    except ConfigError as e:
        # No-op when logging is already configured.
        logging.basicConfig(format=LOG_FORMAT)
        logger.error(f"Configuration error: {e}")
        sys.exit(1)

    logger.info(f"Starting Agentic Search MCP server on {args.socket_addr} ({args.transport})")
    server.run(args.transport, host, port)


if __name__ == "__main__":
    main()
