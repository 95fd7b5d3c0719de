import threading
from dataclasses import replace

import pytest

from propfirm_router import RouterConfig, TieredCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return TieredCache(RouterConfig(), clock=clock)


def test_round_trip(cache):
    cache.set("¿Cuánto cuesta Apex?", "apex", "respuesta")
    assert cache.get("¿Cuánto cuesta Apex?", "apex") == "respuesta"
    assert cache.get("cuánto cuesta apex", "apex") == "respuesta"


def test_set_is_idempotent(cache):
    cache.set("reglas de trading", "apex", "r")
    sizes = (len(cache.exact), len(cache.semantic))
    cache.set("reglas de trading", "apex", "r")
    assert (len(cache.exact), len(cache.semantic)) == sizes
    assert cache.get("reglas de trading", "apex") == "r"


def test_entries_are_scoped_by_firm(cache):
    cache.set("reglas de trading", "apex", "apex rules")
    assert cache.get("reglas de trading", "bulenox") is None
    assert cache.get("reglas de trading") is None


def test_semantic_tier_matches_same_signature(cache):
    cache.set("precio apex", "apex", "A")
    assert cache.get("apex precio", "apex") == "A"
    metrics = cache.metrics()
    assert metrics["semantic_hits"] == 1
    assert metrics["tiers"]["exact"]["misses"] == 1


def test_semantic_registration_can_be_deferred(cache):
    cache.set("precio apex", "apex", "A", semantic=False)
    assert cache.get("apex precio", "apex") is None
    assert cache.register_semantic("precio apex", "apex")
    assert cache.get("apex precio", "apex") == "A"


def test_register_semantic_needs_exact_entry(cache):
    assert not cache.register_semantic("nunca guardada", None)


def test_empty_signature_is_not_registered(cache):
    cache.set("¿?", None, "x")
    assert len(cache.semantic) == 0
    assert cache.get("¿?") == "x"


def test_precomputed_general_answer(cache):
    answer = cache.get("¿Cuál es la mejor firma para un principiante?")
    assert answer is not None
    assert "Principiantes" in answer
    assert cache.metrics()["precomputed_hits"] == 1


def test_precomputed_firm_answer(cache):
    assert "APEX - Precios" in cache.get("precios de apex", "apex")
    assert "BULENOX" in cache.get("precios de bulenox", "bulenox")
    assert cache.get("precios de apex") is None


def test_ttl_per_tier(cache, clock):
    cache.set("precio apex", "apex", "A")
    clock.now += 601
    # exact expired, semantic still valid
    assert cache.get("precio apex", "apex") == "A"
    assert cache.metrics()["semantic_hits"] == 1
    clock.now += 1800
    assert cache.get("precio apex", "apex") is None


def test_explicit_ttl(cache, clock):
    cache.set("hola mundo", None, "x", ttl=5)
    clock.now += 6
    assert cache.get("hola mundo") is None


def test_cleanup_purges_expired(cache, clock):
    cache.set("hola mundo", None, "x", ttl=5)
    cache.set("adios mundo", None, "y", ttl=5)
    cache.set("otra pregunta", None, "z")
    clock.now += 6
    assert cache.cleanup() == 4
    assert len(cache.exact) == 1
    assert len(cache.semantic) == 1


def test_lru_eviction(clock):
    cache = TieredCache(replace(RouterConfig(), exact_max_entries=2), clock=clock)
    cache.set("pregunta uno", None, "1", semantic=False)
    cache.set("pregunta dos", None, "2", semantic=False)
    assert cache.get("pregunta uno") == "1"
    cache.set("pregunta tres", None, "3", semantic=False)
    assert cache.get("pregunta dos") is None
    assert cache.get("pregunta uno") == "1"
    assert cache.get("pregunta tres") == "3"
    assert cache.metrics()["tiers"]["exact"]["evictions"] == 1


def test_clear_keeps_precomputed(cache):
    cache.set("reglas de trading", "apex", "r")
    cache.clear()
    assert cache.get("reglas de trading", "apex") is None
    assert len(cache.precomputed) == 3
    assert cache.get("precios de apex", "apex") is not None


def test_hit_rate(cache):
    assert cache.metrics()["hit_rate"] == 0.0
    cache.set("reglas de trading", "apex", "r")
    cache.get("reglas de trading", "apex")
    cache.get("algo distinto", "apex")
    metrics = cache.metrics()
    assert metrics["total_queries"] == 2
    assert metrics["misses"] == 1
    assert metrics["hit_rate"] == 0.5
    assert metrics["tiers"]["exact"]["size"] == 1


def test_concurrent_writers_do_not_lose_keys(cache):
    def worker(n: int) -> None:
        for i in range(50):
            cache.set(f"pregunta {n} numero {i}", None, f"{n}-{i}", semantic=False)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(cache.exact) == 400
    assert cache.get("pregunta 3 numero 17") == "3-17"
