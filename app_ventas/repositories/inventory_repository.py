# ==============================================================================
# REPOSITORIO DE INVENTARIO (catálogo central)
# ==============================================================================
# Encapsula el acceso a la colección 'inventory' del usuario.
# Documento: {name, brand, cost, shippingCost, stock, sku, barcode, price, date}
# ==============================================================================

from typing import Any, Dict, List, Optional

from app_ventas.repositories.base import CollectionRepository, WriteBatch

SEARCH_FIELDS = ('name', 'sku', 'barcode', 'brand')


def search_products(products: List[Dict[str, Any]], query: str) -> List[Dict[str, Any]]:
    """
    Búsqueda parcial, sin distinguir mayúsculas, por nombre, SKU,
    código de barras o marca. Consulta vacía devuelve todo.
    """
    query = (query or '').strip().lower()
    if not query:
        return list(products)
    return [
        p for p in products
        if any(query in str(p.get(f) or '').lower() for f in SEARCH_FIELDS)
    ]


class InventoryRepository(CollectionRepository):
    """Repositorio del catálogo de productos."""

    collection = 'inventory'

    def get_product(self, uid: str, product_id: str) -> Optional[Dict[str, Any]]:
        return self.get(uid, product_id)

    def product_exists(self, uid: str, product_id: str) -> bool:
        return self.get(uid, product_id) is not None

    def create_product(self, uid: str, data: Dict[str, Any]) -> str:
        """
        Crea un producto.

        Args:
            uid: Usuario dueño
            data: Documento del producto (ver Product.to_dict)

        Returns:
            ID asignado
        """
        return self.store.add(uid, self.collection, data)

    def update_product(self, uid: str, product_id: str, data: Dict[str, Any]) -> bool:
        """
        Actualiza un producto existente.

        Returns:
            True si se actualizó, False si no existía
        """
        if not self.product_exists(uid, product_id):
            return False
        self.store.update(uid, self.collection, product_id, data)
        return True

    def delete_product(self, uid: str, product_id: str) -> Optional[Dict[str, Any]]:
        """
        Elimina un producto. El stock asignado a sucursales no se toca.

        Returns:
            Datos del producto eliminado o None
        """
        removed = self.get(uid, product_id)
        if removed is not None:
            self.store.delete(uid, self.collection, product_id)
        return removed

    def new_batch(self, uid: str) -> WriteBatch:
        """Lote para altas masivas (importación CSV)."""
        return self.store.batch(uid)

    def add_to_batch(self, batch: WriteBatch, data: Dict[str, Any]) -> str:
        return batch.add(self.collection, data)
