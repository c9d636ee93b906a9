# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos (protocolos) de los que dependen los servicios:
#
# 1. INDEPENDENCIA DE ALMACENAMIENTO
#    - Los servicios usan IDocumentStore / repositorios, NO el archivo JSON
#    - Cambiar a otra base de datos solo requiere una nueva implementación
#
# 2. TESTING
#    - Fácil crear dobles que implementen estas interfaces
#
# ==============================================================================

from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class IWriteBatch(Protocol):
    """Lote de escrituras todo-o-nada."""

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        ...

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> Any:
        ...

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> Any:
        ...

    def delete(self, collection: str, doc_id: str) -> Any:
        ...

    def decrement(self, collection: str, doc_id: str, field: str, amount, minimum=0) -> Any:
        ...

    def commit(self) -> None:
        ...


@runtime_checkable
class IDocumentStore(Protocol):
    """
    Almacén de documentos por usuario con suscripciones.

    Implementación actual: DocumentStore (JSON por usuario).
    """

    def get(self, uid: str, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    def list(self, uid: str, collection: str) -> List[Dict[str, Any]]:
        ...

    def query(self, uid: str, collection: str, **equals: Any) -> List[Dict[str, Any]]:
        ...

    def add(self, uid: str, collection: str, data: Dict[str, Any]) -> str:
        ...

    def update(self, uid: str, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        ...

    def delete(self, uid: str, collection: str, doc_id: str) -> None:
        ...

    def batch(self, uid: str) -> IWriteBatch:
        ...

    def increment_or_create(
        self, uid: str, collection: str, match: Dict[str, Any], field: str, delta,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, Any, bool]:
        ...

    def subscribe(
        self, uid: str, collection: str, callback: Callable[[List[Dict[str, Any]], int], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Callable[[], None]:
        ...


@runtime_checkable
class ICollectionRepository(Protocol):
    """Repositorio de una colección del usuario."""

    collection: str

    def list_all(self, uid: str) -> List[Dict[str, Any]]:
        """Todos los documentos de la colección (con 'id')."""
        ...

    def get(self, uid: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...
