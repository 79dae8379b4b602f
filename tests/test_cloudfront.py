from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError, ProfileNotFound

from cf_cache_controller.aws_credentials.models import TemporaryCredentials
from cf_cache_controller.cloudfront import CloudFrontService, _credential_fingerprint
from cf_cache_controller.config import AWSSettings, InvalidationSettings
from cf_cache_controller.debug_logger import DebugLogger
from cf_cache_controller.invalidation.models import InvalidationBatch, InvalidationRequest

_SESSION = "cf_cache_controller.cloudfront.boto3.Session"


def _creds(key: str = "ASIAEXAMPLE1") -> TemporaryCredentials:
    return TemporaryCredentials(
        access_key_id=key,
        secret_access_key="secret",
        session_token="token",
        expiration=datetime(2030, 1, 1, tzinfo=timezone.utc),
    )


def _provider(active: bool, creds: TemporaryCredentials | None = None) -> MagicMock:
    provider = MagicMock()
    provider.should_use_credentials.return_value = active
    provider.get_credentials.return_value = creds
    return provider


def _request(paths: list[str] | None = None) -> InvalidationRequest:
    return InvalidationRequest(
        distribution_id="E123",
        invalidation_batch=InvalidationBatch.from_query(
            {"Paths": {"Items": paths or ["/a"]}, "CallerReference": "ref-1"}
        ),
    )


def _service(provider: MagicMock) -> CloudFrontService:
    return CloudFrontService(
        provider,
        aws_settings=AWSSettings(region="eu-west-1", profile="ops", sdk_timeout_seconds=10),
        invalidation_settings=InvalidationSettings(distribution_id=" E123 "),
    )


def test_distribution_id_is_stripped() -> None:
    assert _service(_provider(False)).get_distribution_id() == "E123"
    assert CloudFrontService(_provider(False)).get_distribution_id() is None


@patch(_SESSION)
def test_profile_client_when_container_inactive(mock_session: MagicMock) -> None:
    client = mock_session.return_value.client.return_value
    client.create_invalidation.return_value = {
        "Location": "https://cloudfront.amazonaws.com/...",
        "Invalidation": {"Id": "I2J0I21PCUYOIK", "Status": "InProgress"},
    }

    result = _service(_provider(False)).create_invalidation(_request(["/a", "/b"]))

    assert result.success is True
    assert result.invalidation_id == "I2J0I21PCUYOIK"
    mock_session.assert_called_once_with(profile_name="ops", region_name="eu-west-1")
    client.create_invalidation.assert_called_once_with(
        DistributionId="E123",
        InvalidationBatch={
            "Paths": {"Quantity": 2, "Items": ["/a", "/b"]},
            "CallerReference": "ref-1",
        },
    )
    config = mock_session.return_value.client.call_args.kwargs["config"]
    assert config.read_timeout == 10


@patch(_SESSION)
def test_container_credentials_are_used(mock_session: MagicMock) -> None:
    mock_session.return_value.client.return_value.create_invalidation.return_value = {}

    result = _service(_provider(True, _creds())).create_invalidation(_request())

    assert result.success is True
    kwargs = mock_session.call_args.kwargs
    assert kwargs["aws_access_key_id"] == "ASIAEXAMPLE1"
    assert kwargs["aws_session_token"] == "token"
    assert kwargs["region_name"] == "eu-west-1"


@patch(_SESSION)
def test_client_reused_until_credentials_rotate(mock_session: MagicMock) -> None:
    mock_session.return_value.client.return_value.create_invalidation.return_value = {}
    provider = _provider(True, _creds())
    service = _service(provider)

    service.create_invalidation(_request())
    service.create_invalidation(_request())
    assert mock_session.call_count == 1

    provider.get_credentials.return_value = _creds("ASIAROTATED2")
    service.create_invalidation(_request())
    assert mock_session.call_count == 2


@patch(_SESSION)
def test_refused_when_container_credentials_unavailable(mock_session: MagicMock) -> None:
    result = _service(_provider(True, None)).create_invalidation(_request())

    assert result.success is False
    assert result.error == "container credentials unavailable"
    mock_session.assert_not_called()


@patch(_SESSION)
def test_client_error_is_reported(mock_session: MagicMock) -> None:
    mock_session.return_value.client.return_value.create_invalidation.side_effect = ClientError(
        {"Error": {"Code": "TooManyInvalidationsInProgress", "Message": "slow down"}},
        "CreateInvalidation",
    )

    result = _service(_provider(False)).create_invalidation(_request())

    assert result.success is False
    assert result.error == "TooManyInvalidationsInProgress: slow down"


@patch(_SESSION)
def test_botocore_error_is_reported(mock_session: MagicMock) -> None:
    mock_session.return_value.client.return_value.create_invalidation.side_effect = (
        EndpointConnectionError(endpoint_url="https://cloudfront.amazonaws.com")
    )

    result = _service(_provider(False)).create_invalidation(_request())

    assert result.success is False
    assert "cloudfront.amazonaws.com" in (result.error or "")


def test_credential_fingerprint_differs_per_secret() -> None:
    assert _credential_fingerprint(_creds()) == _credential_fingerprint(_creds())
    assert _credential_fingerprint(_creds()) != _credential_fingerprint(_creds("ASIAOTHER"))


@pytest.mark.parametrize("active", [True, False])
@patch(_SESSION)
def test_request_params_logged_when_enabled(mock_session: MagicMock, active: bool, caplog) -> None:
    caplog.set_level("INFO", logger="cf_cache_controller.debug")
    mock_session.return_value.client.return_value.create_invalidation.return_value = {}
    service = CloudFrontService(
        _provider(active, _creds()),
        invalidation_settings=InvalidationSettings(distribution_id="E123"),
        debug_logger=DebugLogger(log_invalidation_params=True),
    )

    service.create_invalidation(_request())

    assert "C3 CloudFront Invalidation Request - Distribution ID" in caplog.text
    assert "C3 CloudFront Invalidation Request - Full Params" in caplog.text
    assert "secret" not in caplog.text


@patch(_SESSION, side_effect=ProfileNotFound(profile="does-not-exist"))
def test_client_construction_error_is_reported(mock_session: MagicMock) -> None:
    result = _service(_provider(False)).create_invalidation(_request())

    assert result.success is False
    assert "does-not-exist" in (result.error or "")
