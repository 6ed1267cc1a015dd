# src/itsm_data_analyst/main.py
from dotenv import load_dotenv
load_dotenv()
import asyncio
import os
import logging
import argparse

from quart import Quart
from quart_cors import cors
import hypercorn.asyncio
from hypercorn.config import Config

# --- Logging Setup ---
script_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(os.path.dirname(script_dir))
LOG_DIR = os.path.join(project_root, "logs")
os.makedirs(LOG_DIR, exist_ok=True)

handler = logging.StreamHandler()
handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))

root_logger = logging.getLogger()
root_logger.handlers.clear()
root_logger.addHandler(handler)
root_logger.setLevel(logging.INFO)

app_logger = logging.getLogger("quart.app")
app_logger.setLevel(logging.INFO)
app_logger.addHandler(handler)
app_logger.propagate = False # Prevent duplicate messages in the root logger

logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("hypercorn.access").propagate = False
logging.getLogger("hypercorn.error").propagate = False

llm_log_handler = logging.FileHandler(os.path.join(LOG_DIR, "llm_conversation.log"))
llm_log_handler.setFormatter(logging.Formatter('%(asctime)s - %(message)s'))
llm_logger = logging.getLogger("llm_conversation")
llm_logger.setLevel(logging.INFO)
llm_logger.addHandler(llm_log_handler)
llm_logger.propagate = False
# --- End Logging Setup ---

from itsm_data_analyst.core.config import APP_CONFIG, APP_STATE
from itsm_data_analyst.llm.client_factory import create_llm_client


def create_app():
    app = Quart(__name__)
    app = cors(app, allow_origin="*")

    from itsm_data_analyst.api.routes import claude_ai_bp
    app.register_blueprint(claude_ai_bp)

    @app.route('/health')
    async def health():
        return {"status": "ok", "llm_configured": APP_STATE.get("llm") is not None}

    @app.before_serving
    async def startup():
        """
        Runs once before the server starts serving requests.
        Creates the shared Anthropic client; without a key the proxy routes answer 500.
        """
        if APP_STATE.get("llm") is None:
            try:
                APP_STATE["llm"] = create_llm_client()
                app_logger.info(f"Anthropic client initialized for model {APP_CONFIG.LLM_MODEL}.")
            except ValueError as e:
                app_logger.error(f"LLM client not initialized: {e}")

        host = APP_STATE.get('server_host') or '127.0.0.1'
        port = APP_STATE.get('server_port') or 5050
        print(f"\n{'='*60}")
        print(f"  ITSM data analyst API ready!")
        print(f"  Listening on http://{host}:{port}/api/claude_ai")
        print(f"{'='*60}\n")

    @app.after_serving
    async def shutdown():
        llm = APP_STATE.get("llm")
        if llm is not None:
            await llm.close()
            APP_STATE["llm"] = None

    return app


app = create_app()


async def main(args):
    print("\n--- Starting Hypercorn Server for Quart App ---")
    host = args.host
    port = args.port

    APP_STATE['server_host'] = host
    APP_STATE['server_port'] = port

    config = Config()
    config.bind = [f"{host}:{port}"]
    config.accesslog = None
    config.errorlog = None
    config.read_timeout = int(APP_CONFIG.LLM_REQUEST_TIMEOUT) + 30 # Outlast a slow LLM call
    app_logger.info(f"Hypercorn read timeout set to {config.read_timeout} seconds.")

    await hypercorn.asyncio.serve(app, config)


def run():
    parser = argparse.ArgumentParser(description="Run the ITSM data analyst API server.")
    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Host address to bind the server to. Use '0.0.0.0' for Docker."
    )
    parser.add_argument(
        "--port",
        type=int,
        default=5050,
        help="Port to bind the server to."
    )
    args = parser.parse_args()
    try:
        asyncio.run(main(args))
    except KeyboardInterrupt:
        print("\nServer shut down.")


if __name__ == "__main__":
    run()
