# ==============================================================================
# WSGI Entry Point - Para Gunicorn en producción
# ==============================================================================
# USO:
#   gunicorn wsgi:app --bind 0.0.0.0:$PORT
#
# ESTRUCTURA DEL PROYECTO:
#   repo_root/           <- Directorio de trabajo (en sys.path automáticamente)
#   ├── wsgi.py          <- Este archivo
#   ├── pyproject.toml
#   └── app_ventas/      <- Paquete Python
#       ├── main.py
#       ├── services/
#       └── repositories/
#
# Variables de entorno relevantes: APP_VENTAS_SECRET_KEY, APP_VENTAS_DATA_DIR,
# APP_VENTAS_LOGS_DIR, APP_VENTAS_PRODUCTION (ver app_ventas/config.py).
# ==============================================================================

from app_ventas.main import app

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
