from chainlens.config import PLACEHOLDER_API_KEY, Settings, is_configured_key


def _clear_keys(monkeypatch):
    for name in ("TATUM_API_KEY", "MCP_API_KEY", "MCP_TATUM_API_KEY"):
        monkeypatch.delenv(name, raising=False)


def test_placeholder_key_counts_as_unconfigured(monkeypatch):
    """The shipped placeholder must never be treated as a real credential."""

    _clear_keys(monkeypatch)
    monkeypatch.setenv("TATUM_API_KEY", PLACEHOLDER_API_KEY)

    settings = Settings()

    assert settings.tatum_api_key == PLACEHOLDER_API_KEY
    assert settings.has_tatum_key is False
    assert is_configured_key("") is False
    assert is_configured_key(None) is False
    assert is_configured_key("  ") is False
    assert is_configured_key("t-123") is True


def test_mcp_api_key_alias(monkeypatch):
    """MCP credential loads from the MCP_TATUM_API_KEY alias."""

    _clear_keys(monkeypatch)
    monkeypatch.setenv("MCP_TATUM_API_KEY", "mcp-from-alias")

    settings = Settings()

    assert settings.mcp_api_key == "mcp-from-alias"
    assert settings.resolve_mcp_api_key() == "mcp-from-alias"


def test_mcp_key_falls_back_to_tatum_key(monkeypatch):
    _clear_keys(monkeypatch)
    monkeypatch.setenv("TATUM_API_KEY", "tatum-key")

    settings = Settings()

    assert settings.has_mcp_key is False
    assert settings.resolve_mcp_api_key() == "tatum-key"


def test_without_any_key_the_placeholder_is_handed_over(monkeypatch):
    _clear_keys(monkeypatch)

    settings = Settings(tatum_api_key="", mcp_api_key="")

    assert settings.resolve_mcp_api_key() == PLACEHOLDER_API_KEY


def test_mcp_command_is_split_like_a_shell(monkeypatch):
    monkeypatch.setenv("MCP_COMMAND", "node 'dist/my server.js' --stdio")

    settings = Settings()

    assert settings.mcp_command_args == ["node", "dist/my server.js", "--stdio"]


def test_defaults(monkeypatch):
    for name in ("PORT", "MCP_MAX_RETRIES", "CHAIN_REQUEST_TIMEOUT_SECONDS", "MCP_READY_MARKER"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.port == 3000
    assert settings.mcp_max_retries == 3
    assert settings.chain_request_timeout_seconds == 10.0
    assert settings.mcp_ready_marker == "ready"
