# src/utils/config.py

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Project Paths
PROJECT_ROOT = Path(__file__).parent.parent.parent
DATA_PATH = Path(os.getenv("DATA_PATH", PROJECT_ROOT / "data"))
RAW_DATA_PATH = DATA_PATH / "raw"
PROCESSED_DATA_PATH = DATA_PATH / "processed"
INDEX_PATH = Path(os.getenv("INDEX_PATH", PROCESSED_DATA_PATH / "faiss"))
MATERIALS_PATH = Path(os.getenv("MATERIALS_PATH", RAW_DATA_PATH / "materials.json"))
LOG_PATH = PROJECT_ROOT / "logs"

# Embedding Configuration (BGE-M3, multilingual incl. Thai)
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "BAAI/bge-m3")
EMBEDDING_DIMENSION = int(os.getenv("EMBEDDING_DIMENSION", "1024"))
EMBEDDING_BATCH_SIZE = 32
EMBEDDING_DEVICE = os.getenv("EMBEDDING_DEVICE")  # None = auto-detect

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
