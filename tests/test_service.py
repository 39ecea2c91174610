import os

import pytest

from classifier.cache import ResultCache
from classifier.errors import ResponseParseError, TransportError
from classifier.models import ERROR_CODE
from classifier.normalizer import cache_key
from classifier.provider import ClassificationProvider
from classifier.service import ClassificationService, create_service
from common.config import Settings

TAXONOMY = "101 FRUITS LOCAUX\n202 LAIT ENTIER\n"
APPLE_REPLY = '{"code":"101","label":"FRUITS LOCAUX","confidence":0.92,"rationale":"match"}'
MILK_REPLY = '{"code":"202","label":"LAIT ENTIER","confidence":0.88,"rationale":"lait"}'


@pytest.fixture
def transport(mocker):
    return mocker.MagicMock()


@pytest.fixture
def service(settings, transport, mocker):
    mocker.patch("common.utils._sleep_backoff")
    return ClassificationService(
        settings,
        ClassificationProvider(settings, transport),
        ResultCache(settings.CACHE_TTL_SECONDS, settings.CACHE_MAX_ENTRIES),
    )


def test_classify_one_end_to_end(service, transport):
    transport.complete.return_value = APPLE_REPLY

    result = service.classify_one("Pommes Golden", TAXONOMY)

    assert (result.code, result.label, result.confidence, result.rationale) == (
        "101",
        "FRUITS LOCAUX",
        0.92,
        "match",
    )
    assert cache_key("Pommes Golden") == "golden_pommes"
    assert service.cache.get("golden_pommes") is result


def test_classify_one_second_call_is_served_from_cache(service, transport):
    transport.complete.return_value = APPLE_REPLY

    first = service.classify_one("Pommes Golden", TAXONOMY)
    second = service.classify_one("golden POMMES!", TAXONOMY)

    assert second is first
    assert transport.complete.call_count == 1
    assert service.cache.hit_count("golden_pommes") == 2


def test_classify_one_retries_then_succeeds(service, transport):
    transport.complete.side_effect = [
        TransportError("HTTP error! status: 502", status_code=502),
        TransportError("HTTP error! status: 502", status_code=502),
        APPLE_REPLY,
    ]

    result = service.classify_one("Pommes Golden", TAXONOMY)

    assert result.code == "101"
    assert transport.complete.call_count == 3


def test_classify_one_raises_after_retries_are_exhausted(service, transport):
    transport.complete.side_effect = [ResponseParseError("bad")] * 4

    with pytest.raises(ResponseParseError):
        service.classify_one("Pommes Golden", TAXONOMY)

    assert transport.complete.call_count == 3
    assert service.cache_stats().total_entries == 0


def test_classify_one_corrects_and_caches_hallucinated_label(service, transport):
    transport.complete.return_value = (
        '{"code":"202","label":"LAIT DE VACHE","confidence":0.9,"rationale":"lait"}'
    )

    result = service.classify_one("Lait entier 1L", TAXONOMY)

    assert result.label == "LAIT ENTIER"
    assert result.confidence < 0.9
    assert "corrected" in result.rationale
    assert service.cache.get(cache_key("Lait entier 1L")) is result


def test_classify_one_clamps_out_of_range_confidence(service, transport):
    transport.complete.return_value = (
        '{"code":"101","label":"FRUITS LOCAUX","confidence":1.4,"rationale":"sure"}'
    )

    result = service.classify_one("Pommes Golden", TAXONOMY)

    assert 0.0 <= result.confidence <= 1.0


def test_classify_one_rejects_empty_taxonomy(service, transport):
    with pytest.raises(ValueError):
        service.classify_one("Pommes Golden", "")

    transport.complete.assert_not_called()


def test_classify_batch_mixes_hits_successes_and_failures(service, transport):
    def complete(system_prompt, user_prompt, sampling):
        if "Pommes" in user_prompt:
            return APPLE_REPLY
        if "Lait" in user_prompt:
            return MILK_REPLY
        raise TransportError("HTTP error! status: 500", status_code=500)

    transport.complete.side_effect = complete
    service.classify_one("Pommes Golden", TAXONOMY)
    progress = []

    items = ["Pommes Golden", "Lait entier", "Mystery object", "Golden pommes"]
    results = service.classify_batch(items, TAXONOMY, progress.append)

    assert len(results) == len(items)
    assert [result.code for result in results] == ["101", "202", ERROR_CODE, "101"]
    assert "500" in results[2].rationale
    assert progress == sorted(progress)
    assert progress[-1] == 100


def test_classify_batch_of_ten_reports_monotonic_progress(service, transport):
    transport.complete.return_value = APPLE_REPLY
    progress = []

    results = service.classify_batch(
        [f"article numero{i}" for i in range(10)], TAXONOMY, progress.append
    )

    assert len(results) == 10
    assert len(progress) == 10
    assert progress == sorted(progress)
    assert progress[-1] == 100


def test_classify_batch_never_raises_on_invalid_taxonomy(service, transport):
    results = service.classify_batch(["Pommes Golden", "Lait"], "  ")

    assert [result.code for result in results] == [ERROR_CODE, ERROR_CODE]
    transport.complete.assert_not_called()


def test_cache_stats_and_clear(service, transport):
    transport.complete.side_effect = [APPLE_REPLY, MILK_REPLY]
    service.classify_one("Pommes Golden", TAXONOMY)
    service.classify_one("Pommes Golden", TAXONOMY)
    service.classify_one("Lait entier", TAXONOMY)

    stats = service.cache_stats()
    assert stats.total_entries == 2
    assert stats.total_hits == 3
    assert stats.average_hits == 1.5

    service.clear_cache()

    assert service.cache_stats().total_entries == 0


def test_create_service_builds_components_from_settings(settings, transport):
    service = create_service(settings, transport=transport)

    assert isinstance(service.provider, ClassificationProvider)
    assert service.provider.transport is transport
    assert service.cache.ttl_seconds == settings.CACHE_TTL_SECONDS
    assert service.cache.max_entries == settings.CACHE_MAX_ENTRIES
    assert service.orchestrator.max_workers == settings.MAX_CONCURRENT_REQUESTS


def test_create_service_loads_settings_from_environment(mocker):
    mocker.patch.dict(
        os.environ,
        {"LLM_API_KEY": "key", "CACHE_TTL_SECONDS": "30", "LOG_FORMAT": "json"},
        clear=True,
    )
    configure = mocker.patch("classifier.service.configure_logging")
    transport_cls = mocker.patch("classifier.service.OpenAIChatTransport")

    service = create_service()

    configure.assert_called_once()
    assert isinstance(configure.call_args.args[0], Settings)
    transport_cls.assert_called_once()
    assert service.cache.ttl_seconds == 30


def test_create_service_reraises_configuration_errors(mocker):
    mocker.patch.dict(os.environ, {}, clear=True)

    with pytest.raises(ValueError, match="LLM_API_KEY"):
        create_service()


def test_abandoned_batch_still_caches_the_running_group(service, transport):
    transport.complete.return_value = APPLE_REPLY

    def on_progress(value):
        raise RuntimeError("caller abandoned the batch")

    items = [f"article numero{i}" for i in range(10)]
    with pytest.raises(RuntimeError, match="abandoned"):
        service.classify_batch(items, TAXONOMY, on_progress)

    assert service.cache_stats().total_entries == service.orchestrator.group_size
    assert transport.complete.call_count == 5
