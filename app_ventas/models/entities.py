# ==============================================================================
# ENTIDADES DEL DOMINIO - Definiciones de dataclasses
# ==============================================================================
# Cada entidad representa un documento de una colección del usuario:
#   inventory        → Product
#   branches         → Branch
#   branchInventory  → BranchStock
#   sales            → Sale
#
# Claves de documento en camelCase (branchId, unitPrice); atributos Python en snake_case.
# ==============================================================================

import math
from dataclasses import dataclass
from datetime import datetime, date as date_type
from typing import Any, Dict, Optional, Union


# ==============================================================================
# HELPERS DE CONVERSIÓN
# ==============================================================================

def to_number(value: Any) -> Optional[float]:
    """
    Convierte un valor de formulario/CSV a número.

    Returns:
        float finito, o None si está vacío o no es numérico
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def clean_number(number: float) -> Union[int, float]:
    """150.0 → 150; 2.5 se mantiene."""
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def parse_input_date(value: Any) -> Optional[datetime]:
    """
    Interpreta una fecha de formulario 'YYYY-MM-DD' como medianoche local.

    Returns:
        datetime o None si viene vacía

    Raises:
        ValueError: si el texto no es una fecha válida
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date_type):
        return datetime(value.year, value.month, value.day)
    text = str(value).strip()
    if not text:
        return None
    return datetime.strptime(text[:10], '%Y-%m-%d')


def parse_date(value: Any) -> Optional[datetime]:
    """Lee una fecha ISO guardada en un documento. None si falta o es inválida."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        return None
    # Los campos de calendario se leen en hora local
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def format_date(value: Optional[datetime]) -> Optional[str]:
    """Serializa una fecha para persistencia (ISO local, sin zona)."""
    if value is None:
        return None
    return value.replace(microsecond=0).isoformat()


# ==============================================================================
# CATÁLOGO
# ==============================================================================

@dataclass
class Product:
    """
    Producto del catálogo central (stock de bodega).

    Attributes:
        id: Identificador del documento
        name: Nombre del producto
        brand: Marca
        cost: Costo de compra por unidad
        shipping_cost: Costo de envío total del lote
        stock: Unidades en bodega (independiente del stock de sucursales)
        sku: Código SKU
        barcode: Código de barras
        date: Fecha de alta
        price: Siempre 0; el precio se define en cada venta
    """
    id: str
    name: str
    cost: float = 0.0
    stock: Union[int, float] = 0
    brand: str = ''
    shipping_cost: float = 0.0
    sku: str = ''
    barcode: str = ''
    date: Optional[datetime] = None
    price: float = 0.0

    @property
    def stock_value(self) -> float:
        """Valor del stock a precio de costo."""
        return self.cost * self.stock

    def is_low_stock(self, threshold: int) -> bool:
        return self.stock < threshold

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a documento para persistencia."""
        return {
            'name': self.name,
            'brand': self.brand,
            'stock': self.stock,
            'price': self.price,
            'cost': self.cost,
            'shippingCost': self.shipping_cost,
            'date': format_date(self.date),
            'sku': self.sku,
            'barcode': self.barcode,
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'Product':
        """Crea instancia desde un documento de la colección inventory."""
        return cls(
            id=doc_id,
            name=data.get('name', ''),
            brand=data.get('brand', ''),
            stock=data.get('stock', 0) or 0,
            price=data.get('price', 0.0) or 0.0,
            cost=data.get('cost', 0.0) or 0.0,
            shipping_cost=data.get('shippingCost', 0.0) or 0.0,
            date=parse_date(data.get('date')),
            sku=data.get('sku', ''),
            barcode=data.get('barcode', ''),
        )


# ==============================================================================
# SUCURSALES
# ==============================================================================

@dataclass
class Branch:
    """Sucursal o punto de venta (tienda, máquina expendedora)."""
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name}

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'Branch':
        return cls(id=doc_id, name=data.get('name', ''))


@dataclass
class BranchStock:
    """
    Stock de un producto asignado a una sucursal.
    A lo sumo un registro por par (sucursal, producto).
    """
    id: str
    branch_id: str
    product_id: str
    stock: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'branchId': self.branch_id,
            'productId': self.product_id,
            'stock': self.stock,
        }

    @classmethod
    def from_dict(cls, doc_id: str, data: Dict[str, Any]) -> 'BranchStock':
        return cls(
            id=doc_id,
            branch_id=data.get('branchId', ''),
            product_id=data.get('productId', ''),
            stock=data.get('stock', 0) or 0,
        )


# ==============================================================================
# VENTAS
# ==============================================================================

@dataclass(frozen=True)
class Sale:
    """
    Venta registrada. Inmutable una vez creada.

    Nombre y costo del producto y nombre de la sucursal son copias tomadas
    al momento de vender; no se recalculan desde el catálogo actual.

    Attributes:
        id: Identificador del documento
        product: Nombre del producto (copia)
        product_id: Referencia al producto
        product_cost: Costo unitario del producto (copia)
        branch_id: Referencia a la sucursal
        branch_name: Nombre de la sucursal (copia)
        sales_channel: Canal de venta (igual al nombre de la sucursal)
        quantity: Unidades vendidas
        unit_price: Precio de venta por unidad
        discount: Descuento total aplicado (>= 0)
        amount: Monto neto = quantity * unit_price - discount
        cost: Costo total = product_cost * quantity
        date: Fecha de la transacción
        user_id: uid del dueño de los datos
    """
    id: Optional[str]
    product: str
    product_id: str
    product_cost: float
    branch_id: str
    branch_name: str
    sales_channel: str
    quantity: int
    unit_price: float
    discount: float
    amount: float
    cost: float
    date: Optional[datetime]
    user_id: str

    @property
    def profit(self) -> float:
        return round(self.amount - self.cost, 2)

    @classmethod
    def build(
        cls,
        product_name: str,
        product_id: str,
        product_cost: float,
        branch_id: str,
        branch_name: str,
        quantity: int,
        unit_price: float,
        discount: float,
        sale_date: datetime,
        user_id: str,
    ) -> 'Sale':
        """Construye una venta nueva calculando monto neto y costo."""
        discount = max(0.0, discount or 0.0)
        return cls(
            id=None,
            product=product_name,
            product_id=product_id,
            product_cost=product_cost,
            branch_id=branch_id,
            branch_name=branch_name,
            sales_channel=branch_name,
            quantity=quantity,
            unit_price=unit_price,
            discount=discount,
            amount=round(unit_price * quantity - discount, 2),
            cost=round(product_cost * quantity, 2),
            date=sale_date,
            user_id=user_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convierte a documento para persistencia."""
        return {
            'product': self.product,
            'productId': self.product_id,
            'productCost': self.product_cost,
            'branchId': self.branch_id,
            'branchName': self.branch_name,
            'salesChannel': self.sales_channel,
            'quantity': self.quantity,
            'unitPrice': self.unit_price,
            'discount': self.discount,
            'amount': self.amount,
            'cost': self.cost,
            'date': format_date(self.date),
            'userId': self.user_id,
        }
