"""
LLM Client Factory - single place where the Anthropic client is created.
"""

from typing import Optional

from anthropic import AsyncAnthropic

from itsm_data_analyst.core.config import APP_CONFIG


def create_llm_client(api_key: Optional[str] = None, timeout: Optional[float] = None) -> AsyncAnthropic:
    """
    Creates the async Anthropic client used by the proxy endpoints.

    Args:
        api_key: Anthropic API key. Falls back to ANTHROPIC_API_KEY from the environment.
        timeout: Per-request timeout in seconds.

    Returns:
        The initialized AsyncAnthropic instance

    Raises:
        ValueError: If no API key is available
    """
    api_key = api_key or APP_CONFIG.ANTHROPIC_API_KEY
    if not api_key:
        raise ValueError("Anthropic API key is required but not provided")
    return AsyncAnthropic(
        api_key=api_key,
        timeout=timeout or APP_CONFIG.LLM_REQUEST_TIMEOUT,
        default_headers={"anthropic-version": APP_CONFIG.LLM_API_VERSION},
    )
