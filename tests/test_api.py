"""
Tests for the HTTP API — /health, /chat and the /tools bridge.
"""

from fastapi.testclient import TestClient
from pydantic import BaseModel

from panthereyes.api.dependencies import get_agent_runtime
from panthereyes.main import app

client = TestClient(app)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "service": "panthereyes-agent-server"}


def test_unknown_route_is_json_404():
    response = client.get("/does-not-exist")
    assert response.status_code == 404
    assert response.json() == {"error": "Not found"}


def test_wrong_method_is_json_405():
    response = client.get("/chat")
    assert response.status_code == 405
    assert response.json() == {"error": "Method not allowed"}


# -- /chat -------------------------------------------------------------------


def test_chat_runs_planner(policy_root):
    response = client.post(
        "/chat",
        json={
            "message": "Generate policy tests",
            "intent": "generate_policy_tests",
            "context": {"rootDir": policy_root, "env": "dev", "target": "web"},
        },
    )

    assert response.status_code == 200
    body = response.json()
    assert body["intent"]["resolvedIntent"] == "generate_policy_tests"
    assert body["planner"]["plannerId"] == "generate_policy_tests"
    assert body["planner"]["changeSet"]["dryRun"] is True
    assert len(body["planner"]["changeSet"]["changes"]) == 3
    assert [trace["tool"] for trace in body["tools"]][-1] == "generate_policy_tests"
    assert body["requestId"]


def test_chat_compare_serializes_nested_models(policy_root):
    response = client.post(
        "/chat",
        json={"message": "compare dev and prod", "context": {"rootDir": policy_root, "target": "web"}},
    )

    assert response.status_code == 200
    comparison = response.json()["planner"]["toolOutputs"]["comparison"]
    assert comparison["summary"]["changesDetected"] is True
    assert comparison["environments"] == {"base": "dev", "compare": "prod"}


def test_chat_missing_message_is_400():
    response = client.post("/chat", json={"intent": "explain_finding"})
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid payload")


def test_chat_empty_message_is_400():
    response = client.post("/chat", json={"message": ""})
    assert response.status_code == 400
    assert response.json()["error"].startswith("Invalid payload: message")


def test_chat_invalid_target_is_400(policy_root):
    response = client.post(
        "/chat",
        json={"message": "hi", "context": {"rootDir": policy_root, "target": "desktop"}},
    )
    assert response.status_code == 400


def test_chat_config_error_is_400(make_workspace):
    root = str(make_workspace(policy=None))
    response = client.post(
        "/chat",
        json={"message": "Generate policy tests", "intent": "generate_policy_tests", "context": {"rootDir": root}},
    )

    assert response.status_code == 400
    assert "policy.yaml" in response.json()["error"]


def test_chat_unknown_env_is_400(policy_root):
    response = client.post(
        "/chat",
        json={
            "message": "Generate policy tests",
            "intent": "generate_policy_tests",
            "context": {"rootDir": policy_root, "env": "qa", "target": "web"},
        },
    )
    assert response.status_code == 400


class _Strict(BaseModel):
    count: int


class BrokenRuntime:
    async def handle_chat(self, request):
        return _Strict(count="many")


def test_chat_internal_validation_error_is_500():
    app.dependency_overrides[get_agent_runtime] = BrokenRuntime
    try:
        response = client.post("/chat", json={"message": "compare dev and prod"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json() == {"error": "Internal server error"}


# -- /tools ------------------------------------------------------------------


def test_tools_list():
    response = client.get("/tools/list")
    assert response.status_code == 200
    names = [tool["name"] for tool in response.json()["tools"]]
    assert len(names) == 11
    assert "panthereyes.scan_gate" in names
    assert all(name.startswith("panthereyes.") for name in names)


def test_tools_schema():
    body = client.get("/tools/schema").json()
    assert body["schemaVersion"] == 1
    assert body["endpoints"] == {"schema": "/tools/schema", "list": "/tools/list", "call": "/tools/call"}
    validate = next(tool for tool in body["tools"] if tool["name"] == "panthereyes.validate_security_config")
    assert validate["inputSchema"]["required"] == ["rootDir"]


def test_tools_call_validate(policy_root):
    response = client.post(
        "/tools/call",
        json={"name": "panthereyes.validate_security_config", "arguments": {"rootDir": policy_root}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["content"][0] == {"type": "text", "text": f"Validated PantherEyes security config in {policy_root}."}
    assert body["structuredContent"]["valid"] is True
    assert body["structuredContent"]["counts"] == {"environments": 3, "rules": 4, "exceptions": 2}
    assert body["content"][1]["json"] == body["structuredContent"]


def test_tools_call_compare(policy_root):
    response = client.post(
        "/tools/call",
        json={
            "name": "panthereyes.compare_policy_envs",
            "arguments": {"rootDir": policy_root, "target": "web", "baseEnv": "dev", "compareEnv": "prod"},
        },
    )

    body = response.json()
    assert body["content"][0]["text"] == "Compared dev -> prod for web. Changes detected."
    assert body["structuredContent"]["summary"]["directiveDiffCount"] == 2


def test_tools_call_requires_name():
    response = client.post("/tools/call", json={"arguments": {}})
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid payload: name is required"}


def test_tools_call_unknown_tool():
    response = client.post("/tools/call", json={"name": "panthereyes.nope", "arguments": {}})
    assert response.status_code == 400
    assert response.json() == {"error": "Unknown MCP tool: panthereyes.nope"}


def test_tools_call_invalid_argument(policy_root):
    response = client.post(
        "/tools/call",
        json={
            "name": "panthereyes.preview_effective_policy",
            "arguments": {"rootDir": policy_root, "env": "dev", "target": "desktop"},
        },
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid tools/call argument 'target': expected 'web' or 'mobile'"}


def test_tools_call_non_object_arguments():
    response = client.post(
        "/tools/call", json={"name": "panthereyes.validate_security_config", "arguments": ["x"]}
    )
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid tools/call.arguments: expected object"}


def test_tools_call_tool_failure_is_500(make_workspace):
    root = str(make_workspace(policy=None))
    response = client.post(
        "/tools/call",
        json={"name": "panthereyes.validate_security_config", "arguments": {"rootDir": root}},
    )

    assert response.status_code == 500
    assert response.json()["error"].startswith("PolicyConfigIoError: ")
