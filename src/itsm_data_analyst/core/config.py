# src/itsm_data_analyst/core/config.py
import os
from dotenv import load_dotenv

load_dotenv()

class AppConfig:
    """
    Holds static configuration settings for the application.
    These values are read from the environment at startup and rarely change during runtime.
    """
    # --- Feature Flags & Behavior ---
    CHARTING_ENABLED = os.environ.get('ITSM_CHARTING_ENABLED', 'true').lower() == 'true' # Master switch for the generate_graph_data tool. If False, the tool is not offered to the model.
    AUTO_EXECUTE_TRANSLATIONS = os.environ.get('ITSM_AUTO_EXECUTE_TRANSLATIONS', 'false').lower() == 'true' # If True, a successful query translation runs immediately instead of waiting for confirmation.

    # --- LLM Configuration ---
    ANTHROPIC_API_KEY = os.environ.get('ANTHROPIC_API_KEY', '')
    LLM_MODEL = os.environ.get('ITSM_LLM_MODEL', 'claude-sonnet-4-5-20250929')
    LLM_MAX_TOKENS = int(os.environ.get('ITSM_LLM_MAX_TOKENS', '4096'))
    LLM_TEMPERATURE = float(os.environ.get('ITSM_LLM_TEMPERATURE', '0.7'))
    LLM_API_VERSION = '2023-06-01' # Sent as the anthropic-version header.
    LLM_REQUEST_TIMEOUT = 120.0 # Seconds before a single Messages API call is abandoned.
    CHART_TOOL_NAME = 'generate_graph_data'

    # --- Platform (Table API) Configuration ---
    PLATFORM_INSTANCE_URL = os.environ.get('ITSM_PLATFORM_INSTANCE_URL', 'http://localhost:8080')
    PLATFORM_API_NAMESPACE = os.environ.get('ITSM_PLATFORM_API_NAMESPACE', '/api/x_ipnll_data_ana_0/claude_ai') # Scripted REST API base path hosting analyze/query_translate/get_token.
    PLATFORM_TABLE_API_PATH = '/api/now/table'
    PLATFORM_REQUEST_TIMEOUT = 60.0
    DEFAULT_QUERY_LIMIT = 100
    DEFAULT_DISPLAY_VALUE = 'true'

    # --- Chart Rendering ---
    CHART_PALETTE = (
        '#0088FE',
        '#00C49F',
        '#FFBB28',
        '#FF8042',
        '#8884d8',
        '#82ca9d',
        '#ffc658',
        '#ff7c7c',
    )
    PIE_OUTER_RADIUS = 120
    DONUT_INNER_RADIUS = 60

APP_CONFIG = AppConfig()

APP_STATE = {
    # Live client instances
    "llm": None,

    # Host/port the server was started with, used for the ready message
    "server_host": None,
    "server_port": None,
}
