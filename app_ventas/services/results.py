# ==============================================================================
# RESULTADOS DE SERVICIO
# ==============================================================================
# Todos los servicios devuelven dicts {'ok': bool, ...}. En caso de error:
#   code='validation'   → dato inválido, nada escrito (HTTP 400)
#   code='not_found'    → documento inexistente (HTTP 404)
#   code='store_error'  → fallo del almacén, mensaje genérico (HTTP 503)
# ==============================================================================

from typing import Any, Dict, Optional

from app_ventas.exceptions import StoreError, ValidationError
from app_ventas.performance_logger import log_error

VALIDATION = 'validation'
NOT_FOUND = 'not_found'
STORE_ERROR = 'store_error'


def validation_failure(exc: ValidationError, **extra: Any) -> Dict[str, Any]:
    result = {'ok': False, 'error': exc.message, 'field': exc.field, 'code': VALIDATION}
    if exc.details:
        result['details'] = exc.details
    result.update(extra)
    return result


def not_found(message: str, field: Optional[str] = None) -> Dict[str, Any]:
    return {'ok': False, 'error': message, 'field': field, 'code': NOT_FOUND}


def store_failure(context: str, exc: StoreError, uid: Optional[str], message: str, **extra: Any) -> Dict[str, Any]:
    """Registra el fallo en errors.log y devuelve un mensaje genérico."""
    log_error(context, exc, uid)
    result = {'ok': False, 'error': message, 'code': STORE_ERROR}
    result.update(extra)
    return result
