"""Shared constants for decotv."""

from pathlib import Path

# Deployment
BASE_DIR = Path("/opt/decotv")
DOCKER_NETWORK = "decotv-net"
APP_IMAGE = "ghcr.io/decohererk/decotv:latest"
KV_IMAGE = "apache/kvrocks"
APP_CONTAINER = "decotv-app"
KV_CONTAINER = "decotv-kv"
APP_PORT = 3000
CLI_PATH = Path("/usr/local/bin/decotv")

# Reverse proxy
NGINX_CONF_DIR = Path("/etc/nginx/conf.d")
NGINX_SCAN_DIRS = (Path("/etc/nginx/conf.d"), Path("/etc/nginx/sites-enabled"))
ACME_WEBROOT = Path("/var/www/decotv-acme")
MANAGED_MARKER = "# managed-by: decotv"
SITE_FILE_PREFIX = "decotv-"
LOCK_PATH = Path("/run/lock/decotv-proxy.lock")

# Certbot
LETSENCRYPT_DIR = Path("/etc/letsencrypt")
CERTBOT_EMAIL = ""
RENEW_HOOK_NAME = "decotv-reload-nginx.sh"
RENEW_CRON_LINE = "17 3 * * * certbot renew --quiet"
RENEW_CRON_TAG = "# decotv-cert-renew"

# Audit / logging
LOG_DIR = Path("/var/log/decotv")
AUDIT_JSONL_PATH = LOG_DIR / "audit.jsonl"
AUDIT_DB_PATH = Path("/var/lib/decotv/audit.db")

# Timeouts (seconds)
COMMAND_TIMEOUT = 120.0
ISSUE_TIMEOUT = 300.0
LOOKUP_TIMEOUT = 5.0
LOCK_TIMEOUT = 30.0

# NGINX defaults
DEFAULT_CLIENT_MAX_BODY_SIZE = "20m"
DEFAULT_PROXY_READ_TIMEOUT = "120s"
DEFAULT_PROXY_SEND_TIMEOUT = "120s"

PUBLIC_IP_URL = "https://api.ipify.org"
