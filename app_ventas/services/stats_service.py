# ==============================================================================
# SERVICIO DE ESTADÍSTICAS
# ==============================================================================
# Funciones puras sobre listas de documentos (ventas / productos):
#
#   sales_stats      → ingresos, costo, ganancia, cantidad, promedio
#   inventory_stats  → productos, unidades, valor a costo, stock bajo
#   filter_sales     → filtro por año y mes
#   available_years  → años para el selector
#
# Sin condiciones de error: datos faltantes cuentan como 0. Se redondea a
# 2 decimales solo al final.
# ==============================================================================

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from app_ventas import config
from app_ventas.exceptions import ValidationError
from app_ventas.models import Product, parse_date, to_number

ALL = 'all'

MONTH_NAMES = (
    'Enero', 'Febrero', 'Marzo', 'Abril', 'Mayo', 'Junio',
    'Julio', 'Agosto', 'Septiembre', 'Octubre', 'Noviembre', 'Diciembre',
)


def _amount(doc: Dict[str, Any], key: str) -> float:
    return to_number(doc.get(key)) or 0.0


def sales_stats(sales: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Totales de una lista de ventas.

    Returns:
        {
            'total_revenue': suma de montos netos,
            'total_cost': suma de costos,
            'total_profit': ingresos - costos,
            'total_sales': cantidad de ventas,
            'average_sale': ingresos / cantidad (0 si no hay ventas),
        }
    """
    total_revenue = sum(_amount(s, 'amount') for s in sales)
    total_cost = sum(_amount(s, 'cost') for s in sales)
    total_sales = len(sales)
    average_sale = total_revenue / total_sales if total_sales > 0 else 0
    return {
        'total_revenue': round(total_revenue, 2),
        'total_cost': round(total_cost, 2),
        'total_profit': round(total_revenue - total_cost, 2),
        'total_sales': total_sales,
        'average_sale': round(average_sale, 2),
    }


def inventory_stats(products: List[Dict[str, Any]], threshold: int = config.LOW_STOCK_THRESHOLD) -> Dict[str, Any]:
    """
    Resumen del catálogo.

    Args:
        products: Documentos de la colección inventory
        threshold: stock < threshold cuenta como stock bajo
    """
    items = [Product.from_dict(p.get('id', ''), p) for p in products]
    total_units = sum(item.stock for item in items)
    total_value = sum(item.stock_value for item in items)
    low_stock = sum(1 for item in items if item.is_low_stock(threshold))
    return {
        'total_products': len(products),
        'total_stock_units': int(total_units) if float(total_units).is_integer() else round(total_units, 2),
        'total_stock_value_cost': round(total_value, 2),
        'low_stock_items': low_stock,
    }


# ==============================================================================
# FILTRO POR PERÍODO
# ==============================================================================

def parse_period(year: Union[str, int, None] = ALL, month: Union[str, int, None] = ALL) -> Tuple[Optional[int], Optional[int]]:
    """
    Normaliza el selector de período.

    'all' (o vacío) significa sin filtro. Sin año el mes se ignora, igual
    que el selector de mes deshabilitado en pantalla.

    Returns:
        Tupla (año o None, mes 1-12 o None)

    Raises:
        ValidationError: año o mes no numérico, o mes fuera de 1-12
    """
    def _value(raw, field):
        if raw is None or str(raw).strip() in ('', ALL):
            return None
        try:
            return int(str(raw).strip())
        except ValueError:
            raise ValidationError(f'Valor inválido para {field}: {raw}', field=field)

    year_value = _value(year, 'year')
    if year_value is None:
        return None, None
    month_value = _value(month, 'month')
    if month_value is not None and not 1 <= month_value <= 12:
        raise ValidationError('El mes debe estar entre 1 y 12', field='month')
    return year_value, month_value


def filter_sales(
    sales: List[Dict[str, Any]],
    year: Union[str, int, None] = ALL,
    month: Union[str, int, None] = ALL,
) -> List[Dict[str, Any]]:
    """
    Filtra ventas por año calendario y, opcionalmente, mes (1-12).

    Con year='all' devuelve todas las ventas. Al filtrar, las ventas sin
    fecha quedan fuera.
    """
    year_value, month_value = parse_period(year, month)
    if year_value is None:
        return list(sales)

    result = []
    for sale in sales:
        sale_date = parse_date(sale.get('date'))
        if sale_date is None or sale_date.year != year_value:
            continue
        if month_value is not None and sale_date.month != month_value:
            continue
        result.append(sale)
    return result


def available_years(sales: List[Dict[str, Any]], today: Optional[datetime] = None) -> List[int]:
    """Años con ventas más el año actual, de mayor a menor."""
    years = {(today or datetime.now()).year}
    for sale in sales:
        sale_date = parse_date(sale.get('date'))
        if sale_date is not None:
            years.add(sale_date.year)
    return sorted(years, reverse=True)


def month_options() -> List[Dict[str, Any]]:
    """Opciones del selector de mes."""
    return [{'value': i, 'label': name} for i, name in enumerate(MONTH_NAMES, start=1)]
