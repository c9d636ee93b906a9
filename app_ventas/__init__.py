# ==============================================================================
# app_ventas - Ventas, inventario y sucursales para pequeños negocios
# ==============================================================================
# La app Flask vive en app_ventas.main (create_app / app).
# ==============================================================================

__version__ = '1.0.0'
