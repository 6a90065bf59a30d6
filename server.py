"""
FileKeep Server - Main FastAPI Application

This module contains the main FastAPI application for the FileKeep server.
It serves the sandboxed file manager connector to authenticated users.
"""

import logging
from logging.handlers import RotatingFileHandler
from datetime import datetime
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from managers.config_manager import ConfigManager
from managers.database_manager import DatabaseManager
from chunk_uploader import CleanupOldChunks
from plugins import CreatePluginRegistry

# Configure logging to write to both console and file
# Create logs directory if it doesn't exist
logs_dir = Path("logs")
logs_dir.mkdir(exist_ok=True)

# Create log filename with timestamp
log_filename = logs_dir / f"filekeep-server-{datetime.now().strftime('%Y-%m-%d')}.log"

# Configure logging with both console and file handlers
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        # Console handler
        logging.StreamHandler(),
        # File handler with rotation (max 10MB per file, keep 10 backup files)
        RotatingFileHandler(
            log_filename,
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=10,
            encoding='utf-8'
        )
    ]
)
logger = logging.getLogger(__name__)

# Import database module for shared db_manager instance
import database


# ==================== Lifespan Events ====================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan event handler for startup and shutdown
    Loads configuration, prepares storage and initializes the database
    """
    # Startup
    logger.info("FileKeep Server starting up...")

    config = ConfigManager().get_file_manager_config()
    app.state.config = config

    # Storage directories
    root_path = Path(config.root_path)
    root_path.mkdir(parents=True, exist_ok=True)
    if config.enable_trash:
        (root_path / config.trash_name).mkdir(exist_ok=True)
    Path(config.chunk_path).mkdir(parents=True, exist_ok=True)
    logger.info(f"File root ready: {root_path.resolve()}")

    # Abandoned chunked uploads
    CleanupOldChunks(config.chunk_path, config.chunk_max_age_seconds)

    # Initialize database manager in database module
    database.db_manager = DatabaseManager(config.database_path)

    # Initialize database (creates tables if needed, but won't recreate admin if exists)
    admin_password = database.db_manager.InitializeDatabase()
    if admin_password:
        logger.warning("=" * 60)
        logger.warning("NEW ADMIN USER CREATED")
        logger.warning(f"Username: admin")
        logger.warning(f"Password: {admin_password}")
        logger.warning("SAVE THIS PASSWORD - IT WILL NOT BE SHOWN AGAIN!")
        logger.warning("=" * 60)

    logger.info("Database initialized successfully")

    app.state.plugins = CreatePluginRegistry(config)

    logger.info("Server startup complete")

    yield

    # Shutdown
    logger.info("FileKeep Server shutting down...")
    database.db_manager.engine.dispose()
    logger.info("Shutdown complete")


# ==================== FastAPI Application ====================

app = FastAPI(
    title="FileKeep Server",
    description="Sandboxed file manager with trash, quotas and chunked uploads",
    version="1.0.0",
    lifespan=lifespan
)

# ==================== CORS Middleware ====================

# The browser UI may be served from another origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== Import Routers ====================

from routes import status, auth, connector


# ==================== Include Routers ====================

app.include_router(status.router)
app.include_router(auth.router)
app.include_router(connector.router)


# ==================== Main Entry Point ====================

if __name__ == "__main__":
    """
    Run the server using uvicorn
    """
    logger.info("Starting FileKeep Server...")

    # reload=False: Auto-reload disabled to prevent spurious log messages from
    #               file monitoring. Manually restart server after code changes.
    uvicorn.run(
        "server:app",
        host="0.0.0.0",
        port=8000,
        reload=False,
        log_level="info"
    )
