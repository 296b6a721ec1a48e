import os
from pathlib import Path

from app.core.config import reset_settings

# app.main reads settings at import time; a developer's md2pdf.env must not leak in.
TEST_ENV_FILE = Path(__file__).with_name("no-such-md2pdf.env")

os.environ["MD2PDF_ENV_FILE"] = str(TEST_ENV_FILE)
reset_settings()
