"""Main entry point for the caching API proxy.

Loads environment variables, applies command-line overrides, validates the
configuration and serves the proxy with uvicorn.
"""
from dotenv import load_dotenv
import argparse
import os
import sys

# Load environment variables first, before any other imports
load_dotenv()

import uvicorn

from apicache.app import create_app
from apicache.config import get_config
from apicache.utils.logger import log_error, log_info

parser = argparse.ArgumentParser(description="Run the caching reverse proxy in front of an upstream REST API.")
parser.add_argument('--host', type=str, help='Bind address.')
parser.add_argument('--port', type=int, help='Bind port (default: 8080).')
parser.add_argument('--ttl', type=int, help='Cache TTL in seconds (default: 1800).')
parser.add_argument('--cache-file', type=str, help='Snapshot file for the local cache backend.')
parser.add_argument('--redis-url', type=str, help='Redis URL; pass an empty string to disable Redis.')

args = parser.parse_args()

# Apply parsed arguments to environment variables
if args.host is not None:
    os.environ['HOST'] = args.host
if args.port is not None:
    os.environ['PORT'] = str(args.port)
if args.ttl is not None:
    os.environ['CACHE_TTL_SECONDS'] = str(args.ttl)
if args.cache_file is not None:
    os.environ['CACHE_FILE'] = args.cache_file
if args.redis_url is not None:
    os.environ['REDIS_URL'] = args.redis_url

# Load and validate configuration
config = get_config()
config.log_configuration()

issues = config.validate_configuration()
if issues:
    log_error("Configuration validation failed", issues=issues)
    print("❌ Configuration issues found:")
    for issue in issues:
        print(f"  - {issue}")
    print("\nPlease fix these issues and try again.")
    sys.exit(1)

log_info("Starting proxy", host=config.host, port=config.port)

uvicorn.run(create_app(config), host=config.host, port=config.port, log_level=config.log_level.lower())
