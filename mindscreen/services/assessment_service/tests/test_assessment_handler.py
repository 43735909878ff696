"""Tests for Assessment Service HTTP handler."""
import asyncio
import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from mindscreen.shared.models import GuidanceUnavailable, PersistenceFailure
from mindscreen.shared.utils import configure_pii_salt
from mindscreen.services.guidance_service import (
    GuidanceConfig,
    GuidanceProviderType,
    OpenAIGuidanceProvider,
    StaticGuidanceProvider,
)
from mindscreen.services.assessment_service import handler
from mindscreen.services.assessment_service.assessment_repository import AssessmentRepository
from mindscreen.services.assessment_service.forms import AssessmentFormRepository
from mindscreen.services.assessment_service.history import AssessmentHistoryReader
from mindscreen.services.assessment_service.submission import AssessmentSubmitter

STUDENT = {"X-Student-Id": "student_123", "X-Tenant-Id": "college_001"}
ADMIN = {"X-User-Id": "admin_1", "X-User-Role": "admin"}


@pytest.fixture(autouse=True)
def setup_pii_salt():
    """Configure PII salt before each test."""
    configure_pii_salt("test_salt_that_is_at_least_32_characters_long")


@pytest.fixture(autouse=True)
def fresh_services(monkeypatch):
    """Give every test an empty in-memory store and static guidance."""
    repository = AssessmentRepository()
    monkeypatch.setattr(handler, "repository", repository)
    monkeypatch.setattr(handler, "form_repository", AssessmentFormRepository())
    monkeypatch.setattr(
        handler, "submitter", AssessmentSubmitter(StaticGuidanceProvider(), repository)
    )
    monkeypatch.setattr(handler, "history_reader", AssessmentHistoryReader(repository))


@pytest.fixture
def client():
    """Create Flask test client."""
    handler.app.config['TESTING'] = True
    with handler.app.test_client() as client:
        yield client


def submit(client, form_type, responses, headers=STUDENT):
    return client.post(
        '/assessments',
        json={'formType': form_type, 'responses': responses},
        headers=headers,
    )


def items(count, value):
    return {f"q{n}": value for n in range(1, count + 1)}


class TestHealthEndpoints:
    """Tests for /health and /ready."""

    def test_health_returns_200(self, client):
        response = client.get('/health')
        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['status'] == 'healthy'
        assert data['service'] == 'assessment-service'

    def test_ready_in_memory(self, client):
        response = client.get('/ready')
        assert response.status_code == 200

    def test_ready_reports_database_down(self, client, monkeypatch):
        manager = MagicMock()
        manager.ping.return_value = False
        monkeypatch.setattr(handler, "connection_manager", manager)

        response = client.get('/ready')
        assert response.status_code == 503


class TestSubmitEndpoint:
    """Tests for POST /assessments."""

    def test_submit_phq9(self, client):
        response = submit(client, 'PHQ-9', items(9, 2))

        assert response.status_code == 201
        body = json.loads(response.data)
        assert body['success'] is True
        assert body['message'] == 'Assessment submitted successfully'
        assert body['data']['score'] == 18
        assert body['data']['severityLevel'] == 'Moderately Severe'
        assert body['data']['formType'] == 'PHQ-9'
        assert isinstance(body['data']['recommendedActions'], list)

    def test_missing_identity(self, client):
        response = submit(client, 'PHQ-9', items(9, 2), headers={})
        assert response.status_code == 401
        body = json.loads(response.data)
        assert body['success'] is False
        assert body['error']['code'] == 'UNAUTHORIZED'

    def test_missing_fields(self, client):
        response = client.post('/assessments', json={'formType': 'PHQ-9'}, headers=STUDENT)
        assert response.status_code == 400
        assert json.loads(response.data)['error']['code'] == 'VALIDATION_ERROR'

    def test_unknown_instrument(self, client):
        response = submit(client, 'BDI-II', items(9, 2))
        assert response.status_code == 400
        assert json.loads(response.data)['error']['code'] == 'UNKNOWN_ASSESSMENT_TYPE'

    def test_malformed_responses(self, client):
        response = submit(client, 'PHQ-9', items(8, 2))
        assert response.status_code == 400
        assert json.loads(response.data)['error']['code'] == 'MALFORMED_RESPONSE'

    def test_guidance_unavailable(self, client, monkeypatch):
        submitter = MagicMock()
        submitter.submit = AsyncMock(side_effect=GuidanceUnavailable("timeout"))
        monkeypatch.setattr(handler, "submitter", submitter)

        response = submit(client, 'GAD-7', items(7, 1))
        assert response.status_code == 503
        assert json.loads(response.data)['error']['code'] == 'GUIDANCE_UNAVAILABLE'

    def test_persistence_failure(self, client, monkeypatch):
        submitter = MagicMock()
        submitter.submit = AsyncMock(side_effect=PersistenceFailure("disk full"))
        monkeypatch.setattr(handler, "submitter", submitter)

        response = submit(client, 'GAD-7', items(7, 1))
        assert response.status_code == 500


class LoopBoundChatClient:
    """Stand-in for AsyncOpenAI whose connections belong to the first loop that uses it."""

    def __init__(self, **kwargs):
        self.loop = None
        self.chat = MagicMock()
        self.chat.completions.create = self._create

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    async def _create(self, **kwargs):
        loop = asyncio.get_running_loop()
        if self.loop is None:
            self.loop = loop
        elif self.loop is not loop:
            raise RuntimeError("Event loop is closed")
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = json.dumps({
            "guidance": "You are doing well.",
            "recommendedActions": ["Keep a regular sleep schedule."],
        })
        return response


class TestSubmitWithOpenAIGuidance:
    """Submissions through the OpenAI-backed provider."""

    def test_consecutive_submissions_succeed(self, client, monkeypatch):
        monkeypatch.setattr(
            "mindscreen.services.guidance_service.provider.openai.AsyncOpenAI",
            LoopBoundChatClient,
        )
        config = GuidanceConfig(provider=GuidanceProviderType.OPENAI, api_key="sk-test")
        monkeypatch.setattr(
            handler,
            "submitter",
            AssessmentSubmitter(OpenAIGuidanceProvider(config), handler.repository),
        )

        statuses = [submit(client, 'GAD-7', items(7, 0)).status_code for _ in range(3)]

        assert statuses == [201, 201, 201]
        assert len(handler.history_reader.get_history("student_123", "college_001")) == 3


class TestHistoryEndpoints:
    """Tests for history, detail and stats reads."""

    def test_history_after_submit(self, client):
        submit(client, 'PHQ-9', items(9, 1))
        submit(client, 'GAD-7', items(7, 1))

        response = client.get('/assessments?formType=GAD-7', headers=STUDENT)

        assert response.status_code == 200
        data = json.loads(response.data)['data']
        assert [entry['assessmentName'] for entry in data] == ['GAD-7']

    @pytest.mark.parametrize("query", ["limit=0", "limit=101", "offset=-1", "limit=abc"])
    def test_invalid_paging(self, client, query):
        response = client.get(f'/assessments?{query}', headers=STUDENT)
        assert response.status_code == 400

    def test_unknown_form_type_filter(self, client):
        response = client.get('/assessments?formType=XYZ', headers=STUDENT)
        assert response.status_code == 400

    def test_detail(self, client):
        created = json.loads(submit(client, 'WHO-5', items(5, 5)).data)['data']

        response = client.get(f"/assessments/{created['id']}", headers=STUDENT)

        assert response.status_code == 200
        detail = json.loads(response.data)['data']
        assert detail['score'] == 25
        assert detail['guidance'] == created['guidance']

    def test_detail_invalid_id(self, client):
        response = client.get('/assessments/not-a-uuid', headers=STUDENT)
        assert response.status_code == 400

    def test_detail_other_tenant_not_found(self, client):
        created = json.loads(submit(client, 'WHO-5', items(5, 5)).data)['data']
        other = {"X-Student-Id": "student_123", "X-Tenant-Id": "college_002"}

        response = client.get(f"/assessments/{created['id']}", headers=other)
        assert response.status_code == 404

    def test_stats(self, client):
        submit(client, 'PHQ-9', items(9, 1))
        submit(client, 'PHQ-9', items(9, 2))

        response = client.get('/assessments/stats', headers=STUDENT)

        stats = json.loads(response.data)['data']
        assert stats['totalAssessments'] == 2
        assert stats['assessmentsByType']['PHQ-9']['count'] == 2
        assert stats['assessmentsByType']['PHQ-9']['latestScore'] == 18


class TestCatalogEndpoints:
    """Tests for the assessment catalog and admin forms."""

    def test_available_lists_builtins(self, client):
        response = client.get('/assessments/available')

        data = json.loads(response.data)['data']
        assert len(data) == 10
        assert data[0]['id'] == 'PHQ-9'

    def test_admin_form_appears_in_catalog(self, client):
        response = client.post('/admin/assessments', json={
            'id': 'exam-stress',
            'name': 'Exam Stress Check',
            'questions': [{'id': 'q1', 'text': 'How stressed are you?'}],
        }, headers=ADMIN)
        assert response.status_code == 201
        assert json.loads(response.data)['data']['createdBy'] == 'admin_1'

        data = json.loads(client.get('/assessments/available').data)['data']
        assert data[-1]['id'] == 'exam-stress'
        assert data[-1]['isDynamic'] is True

    def test_admin_role_required(self, client):
        response = client.post('/admin/assessments', json={}, headers=STUDENT)
        assert response.status_code == 403

    def test_duplicate_form(self, client):
        form = {'id': 'f1', 'name': 'F', 'questions': [{}]}
        client.post('/admin/assessments', json=form, headers=ADMIN)

        response = client.post('/admin/assessments', json=form, headers=ADMIN)
        assert response.status_code == 409

    def test_reserved_form_id(self, client):
        response = client.post(
            '/admin/assessments',
            json={'id': 'PHQ-9', 'name': 'Fake', 'questions': [{}]},
            headers=ADMIN,
        )
        assert response.status_code == 400
