# simone/utils/cache_manager.py
from flask import current_app
from datetime import datetime, timedelta
import threading

DEFAULT_TTL_SECONDS = 300


class TTLCache:
    def __init__(self):
        self.cache = {}
        self._lock = threading.Lock()

    def get_ttl_seconds(self):
        """Obtener la configuración solo cuando se necesite"""
        try:
            return current_app.config.get('CACHE_TTL_SECONDS', DEFAULT_TTL_SECONDS)
        except RuntimeError:
            # Fallback si no hay contexto de app
            return DEFAULT_TTL_SECONDS

    def save(self, key, data, ttl_seconds=None):
        if ttl_seconds is None:
            ttl_seconds = self.get_ttl_seconds()
        with self._lock:
            self.cache[key] = {
                'data': data,
                'expiry': datetime.now() + timedelta(seconds=ttl_seconds)
            }

    def get(self, key):
        with self._lock:
            if key in self.cache:
                if datetime.now() < self.cache[key]['expiry']:
                    return self.cache[key]['data']
                else:
                    del self.cache[key]
        return None

    def remove(self, key):
        with self._lock:
            self.cache.pop(key, None)

    def clear(self):
        with self._lock:
            self.cache.clear()


# Instancia global para configuraciones JSON (bancos, envíos)
config_cache = TTLCache()
