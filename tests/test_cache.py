from simone.utils.cache_manager import TTLCache, DEFAULT_TTL_SECONDS


def test_save_and_get():
    cache = TTLCache()
    cache.save('bancos', [{'codigo': 'pichincha'}], ttl_seconds=60)
    assert cache.get('bancos') == [{'codigo': 'pichincha'}]


def test_expired_entry_is_purged():
    cache = TTLCache()
    cache.save('k', 'v', ttl_seconds=-1)
    assert cache.get('k') is None
    assert 'k' not in cache.cache


def test_remove_and_clear():
    cache = TTLCache()
    cache.save('a', 1, ttl_seconds=60)
    cache.save('b', 2, ttl_seconds=60)
    cache.remove('a')
    cache.remove('no-existe')
    assert cache.get('a') is None
    assert cache.get('b') == 2
    cache.clear()
    assert cache.get('b') is None


def test_default_ttl_without_app_context():
    assert TTLCache().get_ttl_seconds() == DEFAULT_TTL_SECONDS


def test_default_ttl_from_config(app):
    assert TTLCache().get_ttl_seconds() == app.config['CACHE_TTL_SECONDS']
