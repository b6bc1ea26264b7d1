"""
Configuração de logging estruturado para a aplicação.

O formato inclui timestamp, nível, nome do logger e mensagem.
Transições de estado (empréstimo, devolução, multa, furto, reparo)
são registradas em INFO; falhas secundárias em ERROR.
"""

import logging
import sys
from typing import Optional

from school_library.core.config import get_settings


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configura o sistema de logging da aplicação.

    Args:
        level: Nível de logging. Se não fornecido, usa LOG_LEVEL do .env
    """
    settings = get_settings()
    log_level = level or settings.LOG_LEVEL

    log_format = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(log_format, datefmt=date_format))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level.upper())

    # Remove handlers existentes para evitar duplicação
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Reduz verbosidade de loggers de terceiros
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"Logging configurado com nível: {log_level.upper()}")


def get_logger(name: str) -> logging.Logger:
    """Retorna um logger para o módulo especificado (geralmente __name__)."""
    return logging.getLogger(name)
