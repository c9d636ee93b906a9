# ==============================================================================
# ALMACÉN DE DOCUMENTOS - Persistencia JSON por usuario
# ==============================================================================
# Cada usuario (uid anónimo) tiene su propio archivo:
#
#   DATA_DIR/users/<uid>.json
#   {
#       "sales":           {"<id>": {...}, ...},
#       "inventory":       {"<id>": {...}, ...},
#       "branches":        {"<id>": {...}, ...},
#       "branchInventory": {"<id>": {...}, ...}
#   }
#
# Al tener todas las colecciones del usuario en un solo archivo, un lote de
# escrituras (venta + descuento de stock, N productos del CSV) se persiste con
# un único os.replace: o se guarda todo o no se guarda nada.
#
# Operaciones condicionales (incremento con creación, descuento con mínimo)
# se evalúan dentro del lock, así el chequeo y la escritura son indivisibles.
#
# Suscripciones: después de cada commit se notifica a los callbacks de las
# colecciones modificadas con la lista completa y actualizada de documentos y
# su versión. La versión se asigna dentro del lock; el suscriptor descarta
# una entrega con versión menor a la que ya tiene.
#
# La caché guarda a lo sumo cache_size usuarios (LRU). Un usuario descartado
# se vuelve a leer desde disco en su próximo acceso.
# ==============================================================================

import copy
import json
import os
import re
import threading
import uuid
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from app_ventas import config
from app_ventas.exceptions import DocumentNotFoundError, InsufficientStockError, StoreError
from app_ventas.performance_logger import log_error

_UID_PATTERN = re.compile(r'^[A-Za-z0-9_-]{1,64}$')

Subscriber = Callable[[List[Dict[str, Any]], int], None]


def new_document_id() -> str:
    """Genera un ID de documento (hex de 32 caracteres)."""
    return uuid.uuid4().hex


class WriteBatch:
    """
    Grupo de escrituras que se aplica todo junto o nada.

    Uso:
        batch = store.batch(uid)
        sale_id = batch.add('sales', {...})
        batch.decrement('branchInventory', entry_id, 'stock', 3)
        batch.commit()
    """

    def __init__(self, store: 'DocumentStore', uid: str):
        self._store = store
        self._uid = uid
        self._ops: List[Tuple] = []
        self._committed = False

    def __len__(self) -> int:
        return len(self._ops)

    @property
    def operations(self) -> List[Tuple]:
        return list(self._ops)

    def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Agrega un documento nuevo. Retorna el ID asignado."""
        doc_id = new_document_id()
        self._ops.append(('set', collection, doc_id, dict(data)))
        return doc_id

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> 'WriteBatch':
        """Crea o reemplaza un documento completo."""
        self._ops.append(('set', collection, doc_id, dict(data)))
        return self

    def update(self, collection: str, doc_id: str, fields: Dict[str, Any]) -> 'WriteBatch':
        """Mezcla campos en un documento existente."""
        self._ops.append(('update', collection, doc_id, dict(fields)))
        return self

    def delete(self, collection: str, doc_id: str) -> 'WriteBatch':
        self._ops.append(('delete', collection, doc_id, None))
        return self

    def increment(self, collection: str, doc_id: str, field: str, delta) -> 'WriteBatch':
        """Suma ``delta`` al campo numérico de un documento existente."""
        self._ops.append(('increment', collection, doc_id, (field, delta)))
        return self

    def decrement(self, collection: str, doc_id: str, field: str, amount, minimum=0) -> 'WriteBatch':
        """
        Resta ``amount`` al campo si el resultado no queda bajo ``minimum``.
        Si no alcanza, el commit completo falla con InsufficientStockError.
        """
        self._ops.append(('decrement', collection, doc_id, (field, amount, minimum)))
        return self

    def commit(self) -> None:
        """
        Aplica todas las operaciones en una sola escritura.

        Raises:
            InsufficientStockError: si un decrement no tiene stock suficiente
            DocumentNotFoundError: si update/increment/decrement apunta a un doc inexistente
            StoreError: si la escritura a disco falla
        """
        if self._committed:
            raise StoreError('El lote ya fue confirmado')
        self._store._commit(self._uid, self._ops)
        self._committed = True


class DocumentStore:
    """
    Almacén de documentos en archivos JSON, un archivo por usuario.

    Reemplaza al almacén en tiempo real externo: lecturas con caché en
    memoria, escrituras atómicas (archivo temporal + os.replace) y
    notificación a suscriptores tras cada cambio.
    """

    def __init__(
        self,
        data_dir: str,
        collections: Iterable[str] = config.COLLECTIONS,
        cache_size: int = config.STORE_CACHE_SIZE,
    ):
        """
        Args:
            data_dir: Carpeta raíz de datos (se crea users/ dentro al escribir)
            collections: Colecciones válidas por usuario
            cache_size: Máximo de usuarios en memoria; se descarta el menos usado
        """
        self.data_dir = data_dir
        self.users_dir = os.path.join(data_dir, 'users')
        self.collections = tuple(collections)
        self._lock = threading.RLock()
        self.cache_size = cache_size
        self._cache: "OrderedDict[str, Dict[str, Dict[str, Any]]]" = OrderedDict()
        self._subscribers: Dict[Tuple[str, str], List[Subscriber]] = {}
        self._versions: Dict[Tuple[str, str], int] = {}

    # =========================================================================
    # ACCESO AL ARCHIVO
    # =========================================================================

    def _user_path(self, uid: str) -> str:
        if not uid or not _UID_PATTERN.match(uid):
            raise StoreError(f'uid inválido: {uid!r}')
        return os.path.join(self.users_dir, f'{uid}.json')

    def _empty_data(self) -> Dict[str, Dict[str, Any]]:
        return {name: {} for name in self.collections}

    def _check_collection(self, collection: str) -> None:
        if collection not in self.collections:
            raise StoreError(f'Colección desconocida: {collection}')

    def _read(self, uid: str) -> Dict[str, Dict[str, Any]]:
        """
        Lee el archivo del usuario (o la caché).

        Un archivo inexistente equivale a colecciones vacías. Un archivo
        corrupto NO se sobrescribe: se reporta como StoreError.
        """
        with self._lock:
            if uid in self._cache:
                self._cache.move_to_end(uid)
                return self._cache[uid]
            path = self._user_path(uid)
            data = self._empty_data()
            if os.path.exists(path):
                try:
                    with open(path, 'r', encoding='utf-8') as f:
                        raw = json.load(f)
                except (OSError, json.JSONDecodeError) as exc:
                    raise StoreError(f'No se pudo leer {path}: {exc}') from exc
                if not isinstance(raw, dict):
                    raise StoreError(f'Formato inválido en {path}')
                for name in self.collections:
                    docs = raw.get(name)
                    if isinstance(docs, dict):
                        data[name] = docs
            self._remember(uid, data)
            return data

    def _write(self, uid: str, data: Dict[str, Dict[str, Any]]) -> None:
        """Escribe el archivo completo del usuario de forma atómica."""
        path = self._user_path(uid)
        temp_path = path + '.tmp'
        with self._lock:
            try:
                os.makedirs(self.users_dir, exist_ok=True)
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, path)
            except (OSError, TypeError, ValueError) as exc:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise StoreError(f'No se pudo escribir {path}: {exc}') from exc

    def reload(self, uid: Optional[str] = None) -> None:
        """Descarta la caché (de un usuario o de todos) para releer desde disco."""
        with self._lock:
            if uid is None:
                self._cache.clear()
            else:
                self._cache.pop(uid, None)

    def _remember(self, uid: str, data: Dict[str, Dict[str, Any]]) -> None:
        self._cache[uid] = data
        self._cache.move_to_end(uid)
        while len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)

    def cached_users(self) -> int:
        with self._lock:
            return len(self._cache)

    # =========================================================================
    # LECTURAS
    # =========================================================================

    @staticmethod
    def _with_id(doc_id: str, doc: Dict[str, Any]) -> Dict[str, Any]:
        record = copy.deepcopy(doc)
        record['id'] = doc_id
        return record

    def get(self, uid: str, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        """Obtiene un documento (con su 'id') o None."""
        self._check_collection(collection)
        with self._lock:
            doc = self._read(uid)[collection].get(doc_id)
            return self._with_id(doc_id, doc) if doc is not None else None

    def list(self, uid: str, collection: str) -> List[Dict[str, Any]]:
        """Lista todos los documentos de una colección (copias, con 'id')."""
        self._check_collection(collection)
        with self._lock:
            docs = self._read(uid)[collection]
            return [self._with_id(doc_id, doc) for doc_id, doc in docs.items()]

    def query(self, uid: str, collection: str, **equals: Any) -> List[Dict[str, Any]]:
        """
        Filtra documentos por igualdad de campos.

        Ejemplo:
            store.query(uid, 'branchInventory', branchId=b, productId=p)
        """
        return [
            doc for doc in self.list(uid, collection)
            if all(doc.get(k) == v for k, v in equals.items())
        ]

    # =========================================================================
    # ESCRITURAS
    # =========================================================================

    def batch(self, uid: str) -> WriteBatch:
        """Crea un lote de escrituras para el usuario."""
        self._user_path(uid)
        return WriteBatch(self, uid)

    def add(self, uid: str, collection: str, data: Dict[str, Any]) -> str:
        """Agrega un documento suelto. Retorna su ID."""
        batch = self.batch(uid)
        doc_id = batch.add(collection, data)
        batch.commit()
        return doc_id

    def update(self, uid: str, collection: str, doc_id: str, fields: Dict[str, Any]) -> None:
        batch = self.batch(uid)
        batch.update(collection, doc_id, fields)
        batch.commit()

    def delete(self, uid: str, collection: str, doc_id: str) -> None:
        batch = self.batch(uid)
        batch.delete(collection, doc_id)
        batch.commit()

    def increment_or_create(
        self,
        uid: str,
        collection: str,
        match: Dict[str, Any],
        field: str,
        delta,
        defaults: Optional[Dict[str, Any]] = None,
    ) -> Tuple[str, Any, bool]:
        """
        Upsert atómico: busca el documento que coincide con ``match``; si no
        existe lo crea con ``{**defaults, **match, field: delta}``, si existe le suma delta.

        Returns:
            Tupla (doc_id, nuevo_valor, creado)
        """
        self._check_collection(collection)
        with self._lock:
            docs = self._read(uid)[collection]
            found = None
            for doc_id, doc in docs.items():
                if all(doc.get(k) == v for k, v in match.items()):
                    found = doc_id
                    break

            batch = self.batch(uid)
            if found is None:
                doc_id = new_document_id()
                doc = dict(defaults or {})
                doc.update(match)
                doc[field] = delta
                batch.set(collection, doc_id, doc)
                new_value, created = delta, True
            else:
                doc_id = found
                batch.increment(collection, doc_id, field, delta)
                new_value, created = (docs[doc_id].get(field) or 0) + delta, False

            deliveries = self._apply(uid, batch.operations)
        self._deliver(uid, deliveries)
        return doc_id, new_value, created

    def _commit(self, uid: str, ops: List[Tuple]) -> None:
        """Aplica operaciones sobre una copia, persiste una sola vez y notifica."""
        self._deliver(uid, self._apply(uid, ops))

    def _apply(self, uid: str, ops: List[Tuple]) -> List[Tuple]:
        """
        Escribe las operaciones y arma las entregas pendientes.

        La versión y la lista que recibe cada suscriptor se toman dentro del
        lock, en el mismo orden que las escrituras.
        """
        changed = set()
        deliveries = []
        with self._lock:
            current = self._read(uid)
            staged = copy.deepcopy(current)
            for op, collection, doc_id, payload in ops:
                self._check_collection(collection)
                docs = staged[collection]
                if op == 'set':
                    docs[doc_id] = copy.deepcopy(payload)
                elif op == 'delete':
                    docs.pop(doc_id, None)
                else:
                    if doc_id not in docs:
                        raise DocumentNotFoundError(collection, doc_id)
                    doc = docs[doc_id]
                    if op == 'update':
                        doc.update(copy.deepcopy(payload))
                    elif op == 'increment':
                        field, delta = payload
                        doc[field] = (doc.get(field) or 0) + delta
                    elif op == 'decrement':
                        field, amount, minimum = payload
                        value = doc.get(field) or 0
                        if value - amount < minimum:
                            raise InsufficientStockError(available=value, requested=amount)
                        doc[field] = value - amount
                    else:
                        raise StoreError(f'Operación desconocida: {op}')
                changed.add(collection)

            if not changed:
                return deliveries
            self._write(uid, staged)
            self._remember(uid, staged)

            for collection in sorted(changed):
                key = (uid, collection)
                callbacks = list(self._subscribers.get(key, []))
                if callbacks:
                    self._versions[key] = self._versions.get(key, 0) + 1
                    docs = [self._with_id(doc_id, doc) for doc_id, doc in staged[collection].items()]
                    deliveries.append((collection, callbacks, docs, self._versions[key]))
        return deliveries

    def _deliver(self, uid: str, deliveries: List[Tuple]) -> None:
        for collection, callbacks, docs, version in deliveries:
            self._notify(uid, collection, callbacks, docs, version)

    # =========================================================================
    # SUSCRIPCIONES
    # =========================================================================

    def subscribe(
        self,
        uid: str,
        collection: str,
        callback: Subscriber,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Callable[[], None]:
        """
        Registra ``callback(docs, version)``, que recibe la lista completa de
        documentos de la colección: una vez al suscribirse y luego tras cada
        cambio. ``version`` crece con cada commit de (uid, colección); una
        entrega con versión menor a otra ya recibida es vieja.

        Returns:
            Función sin argumentos que cancela la suscripción
        """
        self._check_collection(collection)
        key = (uid, collection)
        with self._lock:
            self._subscribers.setdefault(key, []).append(callback)
            try:
                docs = self.list(uid, collection)
            except StoreError as exc:
                docs, error = None, exc
            else:
                error = None
            version = self._versions.get(key, 0)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(key, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(key, None)
                    self._versions.pop(key, None)

        if error is not None:
            if on_error is None:
                unsubscribe()
                raise error
            on_error(error)
        else:
            callback(docs, version)
        return unsubscribe

    def subscriber_count(self, uid: str, collection: str) -> int:
        with self._lock:
            return len(self._subscribers.get((uid, collection), []))

    def _notify(self, uid: str, collection: str, callbacks: List[Subscriber], docs, version: int) -> None:
        for callback in callbacks:
            try:
                callback(copy.deepcopy(docs), version)
            except Exception as exc:
                # La escritura ya quedó persistida; un suscriptor roto no la revierte
                log_error(f'Notificar suscriptor de {collection}', exc, uid)


# ==============================================================================
# REPOSITORIO BASE POR COLECCIÓN
# ==============================================================================

class CollectionRepository:
    """
    Base para los repositorios de una colección del usuario.
    Las subclases definen ``collection``.
    """

    collection: str = ''

    def __init__(self, store: DocumentStore):
        self.store = store

    def list_all(self, uid: str) -> List[Dict[str, Any]]:
        return self.store.list(uid, self.collection)

    def get(self, uid: str, doc_id: str) -> Optional[Dict[str, Any]]:
        if not doc_id:
            return None
        return self.store.get(uid, self.collection, doc_id)

    @staticmethod
    def sort_by_date(docs: List[Dict[str, Any]], reverse: bool = True) -> List[Dict[str, Any]]:
        """Ordena por fecha ISO (más reciente primero). Sin fecha van al final."""
        dated = [d for d in docs if d.get('date')]
        undated = [d for d in docs if not d.get('date')]
        dated.sort(key=lambda d: str(d['date']), reverse=reverse)
        return dated + undated
