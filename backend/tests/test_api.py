from dhsim import settings


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_decision_accepts_gm_fear_change(client):
    body = {
        "command": {
            "campaign_id": "camp-1",
            "type": "sys.daggerheart.gm_fear.set",
            "actor_type": "gm",
            "actor_id": "gm-1",
            "payload": {"after": 4},
        },
        "snapshot": {"campaign_id": "camp-1", "gm_fear": 2},
        "now": "2026-01-02T03:04:05Z",
    }

    r = client.post("/decisions", json=body)

    assert r.status_code == 200, r.text
    data = r.json()
    assert data["accepted"] is True
    assert data["rejection"] is None
    ev = data["events"][0]
    assert ev["type"] == "sys.daggerheart.gm_fear_changed"
    assert ev["payload"]["before"] == 2
    assert ev["payload"]["after"] == 4
    assert ev["timestamp"].startswith("2026-01-02T03:04:05")
    # пустая идентичность системы берётся из settings
    assert ev["system_id"] == settings.SYSTEM_ID
    assert ev["system_version"] == settings.SYSTEM_VERSION


def test_decision_rejection_is_200(client):
    body = {
        "command": {
            "campaign_id": "camp-1",
            "type": "sys.daggerheart.condition.change",
            "payload": {
                "character_id": "c1",
                "conditions_after": ["vulnerable"],
                "removed": ["shaken"],
            },
        },
        "snapshot": {
            "campaign_id": "camp-1",
            "character_states": {"c1": {"conditions": ["vulnerable"]}},
        },
    }

    r = client.post("/decisions", json=body)

    assert r.status_code == 200
    data = r.json()
    assert data["accepted"] is False
    assert data["events"] == []
    assert data["rejection"]["code"] == "CONDITION_CHANGE_REMOVE_MISSING"


def test_decision_without_snapshot(client):
    body = {
        "command": {
            "campaign_id": "camp-1",
            "type": "sys.daggerheart.gm_fear.set",
            "payload": {"after": 0},
        }
    }
    r = client.post("/decisions", json=body)
    assert r.json()["rejection"]["code"] == "GM_FEAR_UNCHANGED"


def test_decision_request_validation_422(client):
    r = client.post("/decisions", json={"command": {"type": "x"}})
    assert r.status_code == 422


def test_death_move_endpoint(client):
    body = {
        "move": "blaze_of_glory",
        "level": 1,
        "hp": 0,
        "hp_max": 6,
        "hope": 2,
        "hope_max": 6,
        "stress": 1,
        "stress_max": 6,
    }
    r = client.post("/rules/death-move", json=body)

    assert r.status_code == 200, r.text
    assert r.json()["life_state"] == "blaze_of_glory"


def test_death_move_rule_error_is_422(client):
    body = {"move": "nope", "level": 1, "hp_max": 6, "hope_max": 6, "stress_max": 6}
    r = client.post("/rules/death-move", json=body)

    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "DEATH_MOVE_INVALID"


def test_rest_endpoint(client):
    body = {"rest_type": "long", "consecutive_short_rests": 2, "seed": 3, "party_size": 4}
    r = client.post("/rules/rest", json=body)

    assert r.status_code == 200, r.text
    data = r.json()
    assert data["rest_type"] == "long"
    assert data["applied"] is True
    assert data["consecutive_short_rests"] == 0
    assert data["gm_fear_gain"] == data["fear_die"] + 4


def test_rest_short_rest_cap_is_422(client):
    body = {"rest_type": "short", "consecutive_short_rests": 3}
    r = client.post("/rules/rest", json=body)

    assert r.status_code == 422
    assert r.json()["detail"]["code"] == "REST_SHORT_REST_LIMIT"
