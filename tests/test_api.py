from __future__ import annotations

import base64
import json

import pytest
from fastapi.testclient import TestClient

from persona_genai.ad_library import AdLibrary
from persona_genai.api.app import app, get_ad_library, get_provider, get_provider_factory
from persona_genai.images import to_data_url


@pytest.fixture
def provider(fake_provider_cls, sample_ad_analysis):
    return fake_provider_cls(evaluations=["needs better lighting", "APPROVED"], ad_analysis=sample_ad_analysis)


@pytest.fixture
def library(tmp_path, image_b64) -> AdLibrary:
    (tmp_path / "image1.png").write_bytes(base64.b64decode(image_b64()))
    return AdLibrary(tmp_path)


@pytest.fixture
def client(provider, library):
    app.dependency_overrides[get_provider] = lambda: provider
    app.dependency_overrides[get_provider_factory] = lambda: (lambda: provider)
    app.dependency_overrides[get_ad_library] = lambda: library
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def parse_sse(text: str) -> list[dict]:
    frames = [f for f in text.split("\n\n") if f.strip()]
    assert all(f.startswith("data: ") for f in frames)
    return [json.loads(f[len("data: ") :]) for f in frames]


class TestGenerateImage:
    def test_streams_scenario_events(self, client, provider) -> None:
        resp = client.post("/api/generate-image", json={"prompt": "a red sports car", "maxAttempts": 2})

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(resp.text)
        assert [e["type"] for e in events] == [
            "status",
            "image",
            "status",
            "evaluation",
            "status",
            "image",
            "status",
            "evaluation",
            "complete",
        ]
        assert events[3] == {"type": "evaluation", "step": 1, "feedback": "needs better lighting"}
        assert events[-1]["isApproved"] is True
        assert events[-1]["finalImage"].startswith("data:image/png;base64,")
        assert events[-1]["totalCost"] == "0.0930"

    @pytest.mark.parametrize("body", [{}, {"prompt": ""}, {"prompt": "   "}, {"prompt": 12}])
    def test_missing_prompt_is_client_error(self, client, provider, body) -> None:
        resp = client.post("/api/generate-image", json=body)
        assert resp.status_code == 400
        assert resp.json()["detail"]
        assert provider.calls == []

    @pytest.mark.parametrize("body", [{"maxAttempts": 0}, {"maxAttempts": 9}, {"maxAttempts": "2"}, {"quality": "ultra"}])
    def test_bad_overrides_are_client_errors(self, client, body) -> None:
        resp = client.post("/api/generate-image", json={"prompt": "a phone", **body})
        assert resp.status_code == 400

    def test_malformed_json(self, client) -> None:
        resp = client.post("/api/generate-image", content=b"{not json", headers={"content-type": "application/json"})
        assert resp.status_code == 400

    def test_resubmitting_same_prompt_repeats_run(self, client, provider) -> None:
        provider.evaluations = ["needs better lighting", "APPROVED", "needs better lighting", "APPROVED"]
        body = {"prompt": "a red sports car", "maxAttempts": 3}

        first = parse_sse(client.post("/api/generate-image", json=body).text)
        second = parse_sse(client.post("/api/generate-image", json=body).text)

        assert [(e["type"], e.get("step")) for e in first] == [(e["type"], e.get("step")) for e in second]
        assert first[-1]["totalCost"] == second[-1]["totalCost"] == "0.0930"

    def test_provider_failure_becomes_error_event(self, client, provider) -> None:
        provider.fail_generate = True
        events = parse_sse(client.post("/api/generate-image", json={"prompt": "a phone"}).text)
        assert [e["type"] for e in events] == ["status", "error"]
        assert events[-1]["error"] == "generation quota exceeded"


class TestOptimizeForPersonas:
    def test_returns_one_entry_per_persona_capped(self, client, image_b64, sample_personas) -> None:
        resp = client.post(
            "/api/optimize-for-personas",
            json={"originalImage": to_data_url(image_b64()), "prompt": "a webcam", "personas": sample_personas},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert [v["personaId"] for v in data["variations"]] == ["p1", "p2", "p3"]
        assert data["optimizationCost"] == "0.1200"
        assert all("error" not in v for v in data["variations"])

    def test_failed_persona_keeps_original(self, client, provider, image_b64, sample_personas) -> None:
        original = to_data_url(image_b64("white"))
        provider.fail_edit_when = lambda prompt: "Tech Tom" in prompt
        data = client.post(
            "/api/optimize-for-personas",
            json={"originalImage": original, "prompt": "a webcam", "personas": sample_personas},
        ).json()
        assert data["variations"][2]["image"] == original
        assert data["variations"][2]["error"]
        assert "error" not in data["variations"][0]

    @pytest.mark.parametrize(
        "body",
        [
            {"prompt": "a webcam", "personas": []},
            {"originalImage": "data:image/png;base64,AAAA", "personas": []},
            {"originalImage": "data:image/png;base64,AAAA", "prompt": "a webcam"},
            {"originalImage": "data:image/png;base64,AAAA", "prompt": "a webcam", "personas": "p1"},
        ],
    )
    def test_missing_fields(self, client, provider, body) -> None:
        resp = client.post("/api/optimize-for-personas", json=body)
        assert resp.status_code == 400
        assert provider.calls == []

    def test_undecodable_image(self, client, provider, sample_personas) -> None:
        resp = client.post(
            "/api/optimize-for-personas",
            json={"originalImage": "data:image/png;base64,bm9wZQ==", "prompt": "x", "personas": sample_personas},
        )
        assert resp.status_code == 400
        assert provider.calls == []


class TestVariate:
    def test_no_image_fails_without_provider_calls(self, client, provider, sample_personas) -> None:
        resp = client.post("/api/variate", json={"personas": sample_personas, "productDescription": "A mattress"})
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert body["message"]
        assert provider.calls == []

    def test_personas_not_a_list(self, client, provider, image_b64) -> None:
        resp = client.post("/api/variate", json={"personas": "everyone", "uploadedAdImage": image_b64()})
        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert provider.calls == []

    def test_uploaded_image(self, client, image_b64, sample_personas) -> None:
        resp = client.post(
            "/api/variate",
            json={
                "personas": sample_personas[:2],
                "productDescription": "A smart mattress",
                "uploadedAdImage": to_data_url(image_b64()),
            },
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert len(body["adImageAnalysis"]["elements"]) == 3
        assert [r["persona"]["id"] for r in body["results"]] == ["p1", "p2"]
        for r in body["results"]:
            assert [e["elementId"] for e in r["rewrittenElements"]] == ["element_1", "element_2", "element_3"]

    def test_library_image(self, client, sample_personas) -> None:
        resp = client.post(
            "/api/variate",
            json={"personas": sample_personas[:1], "productDescription": "x", "adImagePath": "/ads/image1.png"},
        )
        assert resp.status_code == 200
        assert resp.json()["success"] is True

    def test_analysis_failure(self, client, provider, image_b64, sample_personas) -> None:
        provider.ad_analysis = None
        resp = client.post(
            "/api/variate",
            json={"personas": sample_personas[:1], "uploadedAdImage": image_b64()},
        )
        assert resp.status_code == 502
        assert resp.json()["success"] is False
        assert "analysis" in resp.json()["message"]

    def test_rewrite_failure(self, client, provider, image_b64, sample_personas) -> None:
        def boom(prompt: str) -> str:
            raise RuntimeError("upstream timeout")

        provider.text_fn = boom
        resp = client.post(
            "/api/variate",
            json={"personas": sample_personas[:1], "uploadedAdImage": image_b64()},
        )
        assert resp.status_code == 500
        assert resp.json() == {"success": False, "message": "Error processing request: upstream timeout"}


class TestPages:
    def test_personas_endpoint_returns_seed(self, client) -> None:
        data = client.get("/api/personas").json()
        assert [p["id"] for p in data] == ["tech_persona_1", "tech_persona_2", "tech_persona_3"]

    def test_ads_endpoint(self, client) -> None:
        data = client.get("/api/ads").json()
        assert [a["url"] for a in data] == ["/ads/image1.png"]

    def test_index_renders_personas(self, client) -> None:
        resp = client.get("/")
        assert resp.status_code == 200
        assert "Dev Dan - Full-Stack Developer" in resp.text

    def test_missing_api_key(self, monkeypatch) -> None:
        from persona_genai.config import settings

        monkeypatch.setattr(settings, "openai_api_key", None)
        resp = TestClient(app).post("/api/generate-image", json={"prompt": "a phone"})
        assert resp.status_code == 400
        assert "OPENAI_API_KEY" in resp.json()["detail"]

    def test_products_endpoint(self, client) -> None:
        data = client.get("/api/products").json()
        assert len(data) == 5
        assert data[0]["title"] == "Apple Watch Series 10"

    def test_index_offers_product_descriptions(self, client) -> None:
        resp = client.get("/")
        assert "Jabra Elite 8 Active" in resp.text
        assert 'class="product"' in resp.text

    def test_index_has_no_dangling_avatars(self, client) -> None:
        resp = client.get("/")
        assert "/david.png" not in resp.text


class TestVariateWithoutKey:
    @pytest.fixture(autouse=True)
    def no_key(self, monkeypatch):
        from persona_genai.config import settings

        monkeypatch.setattr(settings, "openai_api_key", None)

    def test_validation_error_keeps_envelope(self, sample_personas) -> None:
        resp = TestClient(app).post("/api/variate", json={"personas": sample_personas, "productDescription": "x"})
        assert resp.status_code == 400
        assert resp.json() == {"success": False, "message": "No ad image provided"}

    def test_missing_key_uses_envelope(self, image_b64, sample_personas) -> None:
        resp = TestClient(app).post(
            "/api/variate",
            json={"personas": sample_personas[:1], "uploadedAdImage": image_b64()},
        )
        assert resp.status_code == 400
        body = resp.json()
        assert body["success"] is False
        assert "OPENAI_API_KEY" in body["message"]
