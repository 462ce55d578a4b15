"""
Certificate issuance tests.

Focus:
    - Student selection (explicit ids vs. eligible students of the course)
    - Payload shape sent to the generator
    - Outbound HTTP: x-api-key header, timeout, error mapping
"""
from __future__ import annotations

from typing import Any, Dict, List

import pytest
import requests

from backend.certificates import client as client_mod
from backend.certificates.client import CertificateGenerationError, CertificateGeneratorClient
from backend.certificates.config import CertificatesConfig
from backend.certificates.repo_memory import InMemoryStudentsRepo
from backend.certificates.service import CertificatesService, Student


class RecordingGenerator:
    def __init__(self) -> None:
        self.calls: List[List[Dict[str, Any]]] = []

    def generate(self, entries: List[Dict[str, Any]]) -> None:
        self.calls.append(entries)


def _repo() -> InMemoryStudentsRepo:
    repo = InMemoryStudentsRepo()
    common = {"course_id": 1, "course_name": "JS 2023Q1", "primary_skill_name": "JavaScript"}
    repo.add_student(Student(id=1, first_name="Ada", last_name="Lovelace", **common))
    repo.add_student(Student(id=2, first_name="Alan", last_name="Turing", is_expelled=True, **common))
    repo.add_student(Student(id=3, first_name="Grace", last_name="Hopper", is_failed=True, **common))
    repo.add_student(Student(id=4, first_name="Linus", last_name="T", course_id=2, course_name="Other"))
    return repo


def test_issue_for_course_selects_eligible_students():
    generator = RecordingGenerator()
    service = CertificatesService(_repo(), generator, clock_ms=lambda: 1_700_000_000_000)

    entries = service.issue(1)

    assert entries == [
        {"studentId": 1, "course": "JS 2023Q1 (JavaScript)", "name": "Ada Lovelace", "date": 1_700_000_000_000}
    ]
    assert generator.calls == [entries]


def test_issue_for_explicit_students_ignores_status():
    generator = RecordingGenerator()
    service = CertificatesService(_repo(), generator, clock_ms=lambda: 1)

    entries = service.issue(1, [2, 3])

    assert [e["studentId"] for e in entries] == [2, 3]
    assert entries[0]["name"] == "Alan Turing"


def test_issue_posts_even_when_nobody_is_eligible():
    generator = RecordingGenerator()
    service = CertificatesService(InMemoryStudentsRepo(), generator, clock_ms=lambda: 1)
    assert service.issue(9) == []
    assert generator.calls == [[]]


class _FakeResponse:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code


def _cfg(url="https://certs.example.org/generate", key="secret") -> CertificatesConfig:
    return CertificatesConfig(generation_url=url, api_key=key, timeout_seconds=7)


def test_client_posts_json_with_api_key(monkeypatch: pytest.MonkeyPatch):
    captured: Dict[str, Any] = {}

    def fake_post(url, json=None, headers=None, timeout=None):
        captured.update(url=url, json=json, headers=headers, timeout=timeout)
        return _FakeResponse(200)

    monkeypatch.setattr(client_mod.requests, "post", fake_post)
    CertificateGeneratorClient(_cfg()).generate([{"studentId": 1}])

    assert captured["url"] == "https://certs.example.org/generate"
    assert captured["json"] == [{"studentId": 1}]
    assert captured["headers"] == {"x-api-key": "secret"}
    assert captured["timeout"] == 7


def test_client_without_url_is_not_configured(monkeypatch: pytest.MonkeyPatch):
    def fail_post(*args, **kwargs):  # pragma: no cover - must not be called
        raise AssertionError("unexpected HTTP call")

    monkeypatch.setattr(client_mod.requests, "post", fail_post)
    with pytest.raises(CertificateGenerationError) as exc:
        CertificateGeneratorClient(_cfg(url=None)).generate([])
    assert str(exc.value) == "certificate_generation_not_configured"


def test_client_maps_transport_errors(monkeypatch: pytest.MonkeyPatch):
    def boom(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(client_mod.requests, "post", boom)
    with pytest.raises(CertificateGenerationError) as exc:
        CertificateGeneratorClient(_cfg()).generate([])
    assert str(exc.value) == "certificate_generation_failed"


def test_client_maps_non_2xx(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(client_mod.requests, "post", lambda *a, **k: _FakeResponse(500))
    with pytest.raises(CertificateGenerationError):
        CertificateGeneratorClient(_cfg()).generate([])
