# ==============================================================================
# EXCEPCIONES DEL DOMINIO
# ==============================================================================
# Tres familias de error:
#   - Validación: datos incompletos, stock insuficiente, CSV mal formado.
#     Se reportan al usuario y NO se escribe nada.
#   - Almacenamiento: fallo al leer/escribir el JSON del usuario.
#     Se registran en errors.log y el usuario ve un mensaje genérico.
#   - Autenticación: el inicio de sesión anónimo falló; sin uid no hay datos.
#
# Los servicios capturan estas excepciones y devuelven dicts {'ok': False}.
# ==============================================================================

from typing import Any, Dict, Optional


class AppVentasError(Exception):
    """Excepción base de la aplicación."""

    default_message = 'Ocurrió un error en la aplicación'

    def __init__(self, message: str = None, code: str = None, details: Dict[str, Any] = None):
        self.message = message or self.default_message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convierte la excepción a un dict apto para respuestas JSON."""
        d = {
            'error': self.message,
            'type': self.__class__.__name__,
        }
        if self.code:
            d['code'] = self.code
        if self.details:
            d['details'] = self.details
        return d


class ValidationError(AppVentasError):
    """Dato de entrada inválido. ``field`` nombra el campo culpable."""

    default_message = 'Datos inválidos'

    def __init__(self, message: str = None, field: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.field = field

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        if self.field:
            d['field'] = self.field
        return d


class InsufficientStockError(ValidationError):
    """El stock disponible no alcanza para la cantidad pedida."""

    default_message = 'Stock insuficiente'

    def __init__(self, available: Any, requested: Any, message: str = None, **kwargs):
        message = message or f'Stock insuficiente: quedan {available}, se pidieron {requested}'
        kwargs.setdefault('field', 'quantity')
        super().__init__(message, **kwargs)
        self.available = available
        self.requested = requested


class StoreError(AppVentasError):
    """Fallo de lectura/escritura del almacén de documentos."""

    default_message = 'Error del almacén de datos'


class DocumentNotFoundError(StoreError):
    """Se intentó modificar un documento que no existe."""

    default_message = 'Documento no encontrado'

    def __init__(self, collection: str, doc_id: str, **kwargs):
        super().__init__(f'{collection}/{doc_id} no existe', **kwargs)
        self.collection = collection
        self.doc_id = doc_id


class AuthError(AppVentasError):
    """El inicio de sesión anónimo no pudo completarse."""

    default_message = 'No se pudo iniciar sesión'
