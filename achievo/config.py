"""Achievo configuration constants.

Environment-based configuration, grouped by the external system each
setting talks to. All variables use the ``ACHIEVO_`` prefix.
"""
import os
from pathlib import Path


# =============================================================================
# PERSISTENCE CONFIGURATION
# =============================================================================

def _get_data_dir() -> Path:
    """Determine data directory based on environment.

    Priority:
    1. ACHIEVO_DATA_DIR env var (explicit override)
    2. /data/achievo if it exists (Docker volume mount)
    3. ~/.achievo (local development)
    4. /tmp/achievo (container fallback when home unavailable)
    """
    env_path = os.getenv("ACHIEVO_DATA_DIR")
    if env_path:
        return Path(env_path)

    docker_path = Path("/data/achievo")
    if docker_path.exists():
        return docker_path

    try:
        home_path = Path.home() / ".achievo"
        home_path.mkdir(parents=True, exist_ok=True)
        return home_path
    except (OSError, PermissionError):
        return Path("/tmp/achievo")


DATA_DIR: Path = _get_data_dir()


def _get_database_url() -> str:
    """Get the index store database URL from environment.

    Priority:
    1. ACHIEVO_DATABASE_URL - explicit full connection string
    2. ACHIEVO_POSTGRES_* - construct PostgreSQL URL from components
    3. SQLite fallback for local development
    """
    if url := os.getenv("ACHIEVO_DATABASE_URL"):
        return url

    host = os.getenv("ACHIEVO_POSTGRES_HOST")
    if host:
        user = os.getenv("ACHIEVO_POSTGRES_USER", "achievo")
        password = os.getenv("ACHIEVO_POSTGRES_PASSWORD", "")
        db = os.getenv("ACHIEVO_POSTGRES_DB", "achievo")
        return f"postgresql+psycopg://{user}:{password}@{host}/{db}?sslmode=require"

    return f"sqlite:///{DATA_DIR}/achievo_index.db"


DATABASE_URL: str = _get_database_url()


# =============================================================================
# LEDGER CONFIGURATION
# =============================================================================

LEDGER_NETWORK_ID: str = os.getenv("ACHIEVO_NEAR_NETWORK_ID", "testnet")
LEDGER_RPC_URL: str = os.getenv("ACHIEVO_NEAR_NODE_URL", "https://rpc.testnet.near.org")

# Change calls are signed and submitted by a relayer that holds the
# function-call keys of the accounts this service acts for.
LEDGER_SIGNER_URL: str = os.getenv("ACHIEVO_NEAR_SIGNER_URL", "http://localhost:3030")
LEDGER_SIGNER_TOKEN: str | None = os.getenv("ACHIEVO_NEAR_SIGNER_TOKEN")

CONTRACT_NAME: str = os.getenv("ACHIEVO_NEAR_CONTRACT_NAME", "bernieio.testnet")

LEDGER_TIMEOUT_SECONDS: float = float(os.getenv("ACHIEVO_NEAR_TIMEOUT", "15.0"))

# Gas in gas units (1 TGas = 10^12)
DEFAULT_GAS: str = os.getenv("ACHIEVO_NEAR_DEFAULT_GAS", "30000000000000")
PAYMENT_GAS: str = os.getenv("ACHIEVO_NEAR_PAYMENT_GAS", "300000000000000")


# =============================================================================
# CONTENT STORE CONFIGURATION
# =============================================================================

PINATA_BASE_URL: str = os.getenv("ACHIEVO_PINATA_BASE_URL", "https://api.pinata.cloud")
PINATA_GATEWAY_URL: str = os.getenv(
    "ACHIEVO_PINATA_GATEWAY_URL", "https://gateway.pinata.cloud/ipfs"
)
PINATA_API_KEY: str | None = os.getenv("ACHIEVO_PINATA_API_KEY")
PINATA_SECRET_API_KEY: str | None = os.getenv("ACHIEVO_PINATA_SECRET_API_KEY")
PINATA_TIMEOUT_SECONDS: float = float(os.getenv("ACHIEVO_PINATA_TIMEOUT", "30.0"))


# =============================================================================
# AUTHORIZATION CONFIGURATION
# =============================================================================

# Accounts that predate the on-chain role system. They are granted
# admin-equivalent access regardless of their resolved role.
LEGACY_ADMIN_ACCOUNTS: frozenset[str] = frozenset(
    a.strip()
    for a in os.getenv(
        "ACHIEVO_LEGACY_ADMIN_ACCOUNTS", "achievo.testnet,achievo-admin.testnet"
    ).split(",")
    if a.strip()
)

# What the guard does when the role lookup cannot reach the ledger:
#   deny          - fail closed with 503 (default)
#   default_user  - treat the caller as an ordinary user (legacy behaviour)
ROLE_UNAVAILABLE_POLICY: str = os.getenv("ACHIEVO_ROLE_UNAVAILABLE_POLICY", "deny").lower()

IDENTITY_HEADER: str = "X-Wallet-Address"
LEGACY_IDENTITY_HEADER: str = "wallet_address"


# =============================================================================
# PAYMENTS AND REWARDS
# =============================================================================

# ledger   - process_payment contract call with attached deposit (default)
# log_only - record the caller-claimed transaction hash without verification
PAYMENT_MODE: str = os.getenv("ACHIEVO_PAYMENT_MODE", "ledger").lower()

# Amount the reward contract grants when grant_reward returns only an id
REWARD_DEFAULT_AMOUNT: str = os.getenv("ACHIEVO_REWARD_DEFAULT_AMOUNT", "100")


# =============================================================================
# OPERATIONAL
# =============================================================================

SERVICE_PORT: int = int(os.getenv("ACHIEVO_PORT", "5000"))
AUDIT_ENABLED: bool = os.getenv("ACHIEVO_AUDIT_ENABLED", "true").lower() == "true"


def validate_config() -> list[str]:
    """Return a list of configuration problems that will break sagas.

    Missing Pinata credentials are not fatal at startup (read paths still
    work) but every issuance will fail at the content phase.
    """
    problems = []
    if not PINATA_API_KEY or not PINATA_SECRET_API_KEY:
        problems.append(
            "ACHIEVO_PINATA_API_KEY / ACHIEVO_PINATA_SECRET_API_KEY not set; "
            "certificate issuance will fail"
        )
    if ROLE_UNAVAILABLE_POLICY not in ("deny", "default_user"):
        problems.append(
            f"Unknown ACHIEVO_ROLE_UNAVAILABLE_POLICY={ROLE_UNAVAILABLE_POLICY!r}; "
            "using 'deny'"
        )
    if PAYMENT_MODE not in ("ledger", "log_only"):
        problems.append(f"Unknown ACHIEVO_PAYMENT_MODE={PAYMENT_MODE!r}; using 'ledger'")
    return problems
