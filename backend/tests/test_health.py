def test_health_reports_database(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"success": True, "status": "ok", "database": "connected"}


def test_unknown_route_uses_failure_envelope(client):
    response = client.get("/nowhere")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Not Found"}
