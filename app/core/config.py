import os
from urllib.parse import urlparse
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(val: str | None) -> list[str]:
    return [v.strip() for v in (val or "").split(",") if v.strip()]


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings(BaseSettings):
    # App
    APP_NAME: str = "xFrora API"
    ENV: str = os.getenv("ENV", "production")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # Frontend URL used for CORS and the x402 resource
    NEXT_PUBLIC_URL: str = os.getenv("NEXT_PUBLIC_URL", "https://xfroranft.xyz")

    # CORS (schemed origins like https://xfroranft.xyz)
    ALLOW_ORIGINS: list[str] = Field(default_factory=list)  # override via ALLOWED_ORIGINS (CSV)
    ALLOW_METHODS: list[str] = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]
    ALLOW_HEADERS: list[str] = ["*"]
    ALLOW_CREDENTIALS: bool = True

    # DB
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./xfrora.db")
    MOCK_MODE: bool = _env_flag("MOCK_MODE")

    # On-chain (Base mainnet)
    RPC_URL: str = os.getenv("RPC_URL", "https://mainnet.base.org")
    RPC_TIMEOUT_SECONDS: int = int(os.getenv("RPC_TIMEOUT_SECONDS", "10"))
    CHAIN_ID: int = int(os.getenv("NEXT_PUBLIC_CHAIN_ID", "8453"))
    CONTRACT_ADDRESS: str = os.getenv(
        "CONTRACT_ADDRESS",
        "0x7De68EB999A314A0f986D417adcbcE515E476396",
    )

    # EIP-712 mint signer (🔑 required to issue permits)
    SERVER_SIGNER_PRIVATE_KEY: str = os.getenv("SERVER_SIGNER_PRIVATE_KEY", "")

    # Coinbase CDP facilitator
    CDP_API_KEY_ID: str = os.getenv("CDP_API_KEY_ID", "")
    CDP_API_KEY_SECRET: str = os.getenv("CDP_API_KEY_SECRET", "")
    CDP_API_HOST: str = os.getenv("CDP_API_HOST", "api.cdp.coinbase.com")
    FACILITATOR_TIMEOUT_SECONDS: int = int(os.getenv("FACILITATOR_TIMEOUT_SECONDS", "30"))
    X402_VERIFY_BEFORE_SETTLE: bool = _env_flag("X402_VERIFY_BEFORE_SETTLE")

    # x402 payment (5 USDC on Base)
    PAYMENT_RECIPIENT_ADDRESS: str = os.getenv(
        "PAYMENT_RECIPIENT_ADDRESS",
        "0xDA9097c5672928a16C42889cD4b07d9a766827ee",
    )
    USDC_ADDRESS: str = os.getenv("USDC_ADDRESS", "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913")
    PAYMENT_AMOUNT: str = os.getenv("PAYMENT_AMOUNT", "5000000")  # 6 decimals
    MINT_RESOURCE_URL: str = os.getenv("MINT_RESOURCE_URL", "")

    # Sessions / header secrets
    FARCASTER_CLIENT_SECRET: str = os.getenv("FARCASTER_CLIENT_SECRET", "")
    ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")
    UPDATE_TOKEN_SECRET: str = os.getenv("UPDATE_TOKEN_SECRET", "")
    SESSION_COOKIE_NAME: str = "farcaster_user_session"
    SESSION_MAX_AGE_SECONDS: int = 60 * 60 * 24 * 7  # 7 days
    SESSION_COOKIE_SECURE: bool = os.getenv("SESSION_COOKIE_SECURE", "true").lower() == "true"

    # Third parties
    OPENSEA_API_KEY: str = os.getenv("OPENSEA_API_KEY", "")
    IPFS_GATEWAY: str = os.getenv("IPFS_GATEWAY", "https://gateway.pinata.cloud/ipfs/")

    # Allowed to create referral links without holding the NFT
    DEVELOPER_WALLET: str = os.getenv(
        "DEVELOPER_WALLET",
        "0xEdf8e693b3ab4899a03aB22eDF90E36a6AC1Fd9d",
    )

    # Load .env file
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # ---------- Helpers ----------

    def expected_domain(self) -> str:
        netloc = urlparse(self.NEXT_PUBLIC_URL).netloc
        return netloc or "xfroranft.xyz"

    def payment_network(self) -> str:
        return "base-sepolia" if self.CHAIN_ID == 84532 else "base"

    def mint_resource_url(self) -> str:
        if self.MINT_RESOURCE_URL:
            return self.MINT_RESOURCE_URL
        parsed = urlparse(self.NEXT_PUBLIC_URL)
        scheme = parsed.scheme or "https"
        return f"{scheme}://{self.expected_domain()}/api/mint-permit-v2"

    def is_development(self) -> bool:
        return self.ENV.lower() == "development"

    def frontend_origins(self) -> list[str]:
        if self.ALLOW_ORIGINS:
            return self.ALLOW_ORIGINS

        parsed = urlparse(self.NEXT_PUBLIC_URL)
        scheme = parsed.scheme or "https"
        dom = self.expected_domain()
        apex = dom.removeprefix("www.")
        return list({
            f"{scheme}://{dom}",
            f"{scheme}://{apex}",
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        })


def build_settings() -> Settings:
    s = Settings()

    # mock:// URLs and MOCK_MODE both run on an in-memory database
    if s.DATABASE_URL.startswith("mock://"):
        s.MOCK_MODE = True
    if s.MOCK_MODE:
        s.DATABASE_URL = "sqlite://"
    elif s.DATABASE_URL.startswith("postgres://"):
        s.DATABASE_URL = s.DATABASE_URL.replace("postgres://", "postgresql://", 1)

    # Load CORS overrides
    env_origins = _split_csv(os.getenv("ALLOWED_ORIGINS"))
    if env_origins:
        s.ALLOW_ORIGINS = env_origins
    else:
        s.ALLOW_ORIGINS = s.frontend_origins()

    return s


settings = build_settings()
