# ==============================================================================
# SERVICIO DE AUTENTICACIÓN ANÓNIMA
# ==============================================================================
# Cada visitante recibe un uid anónimo que define el espacio de sus datos
# (DATA_DIR/users/<uid>.json). No hay contraseñas ni roles.
#
# Registro de uids emitidos: DATA_DIR/users.json
#   {"<uid>": {"created_at": "2024-05-10T12:00:00+00:00"}}
#
# Si el inicio de sesión falla se registra en errors.log y se devuelve None;
# sin uid, la capa web bloquea todas las operaciones de datos.
# ==============================================================================

import json
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from app_ventas.exceptions import AuthError
from app_ventas.performance_logger import log_error, log_event


class AuthService:
    """Emite y reconoce uids anónimos."""

    def __init__(self, data_dir: str):
        self.registry_path = os.path.join(data_dir, 'users.json')
        self._lock = threading.RLock()

    def _read_registry(self) -> Dict[str, Any]:
        if not os.path.exists(self.registry_path):
            return {}
        with open(self.registry_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f'Formato inválido en {self.registry_path}')
        return data

    def _write_registry(self, data: Dict[str, Any]) -> None:
        temp_path = self.registry_path + '.tmp'
        os.makedirs(os.path.dirname(self.registry_path), exist_ok=True)
        with open(temp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(temp_path, self.registry_path)

    def register(self, uid: str) -> None:
        """
        Agrega un uid al registro.

        Raises:
            AuthError: el registro no se pudo leer o escribir
        """
        try:
            with self._lock:
                registry = self._read_registry()
                registry[uid] = {'created_at': datetime.now(timezone.utc).isoformat()}
                self._write_registry(registry)
        except (OSError, ValueError) as exc:
            raise AuthError(f'No se pudo registrar el usuario: {exc}') from exc

    def sign_in_anonymously(self) -> Optional[str]:
        """
        Crea un uid anónimo nuevo y lo registra.

        Returns:
            uid (hex de 32 caracteres) o None si no se pudo registrar
        """
        uid = uuid.uuid4().hex
        try:
            self.register(uid)
        except AuthError as exc:
            log_error('Inicio de sesión anónimo', exc)
            return None
        log_event('Inicio de sesión anónimo', uid)
        return uid

    def is_known(self, uid: Optional[str]) -> bool:
        """True si el uid fue emitido por este servidor."""
        if not uid:
            return False
        try:
            with self._lock:
                return uid in self._read_registry()
        except (OSError, ValueError) as exc:
            log_error('Lectura de registro de usuarios', exc, uid)
            return False
