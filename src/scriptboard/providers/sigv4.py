"""AWS Signature Version 4 headers for the Bedrock runtime endpoint.

Signing is delegated to botocore's ``SigV4Auth``; this module only adapts it
to httpx, which sends the request. The signing time is injectable so the
published AWS test vectors can be checked.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from botocore.auth import SIGV4_TIMESTAMP, SigV4Auth
from botocore.awsrequest import AWSRequest
from botocore.credentials import Credentials

if TYPE_CHECKING:
    from scriptboard.config import SignedCredentials

ALGORITHM = "AWS4-HMAC-SHA256"


@dataclass(frozen=True)
class SignedRequest:
    """Headers to send plus the intermediate strings (kept for debugging)."""

    headers: dict[str, str]
    canonical_request: str
    string_to_sign: str
    signature: str


def sign_request(
    *,
    method: str,
    host: str,
    path: str,
    payload: bytes,
    region: str,
    service: str,
    credentials: SignedCredentials,
    headers: dict[str, str] | None = None,
    now: datetime | None = None,
) -> SignedRequest:
    """Sign an HTTPS request.

    Every header passed in *headers* is signed, together with ``host``,
    ``x-amz-date`` and, when the credentials carry one, ``x-amz-security-token``.
    The path is signed re-encoded, so a model id sent as
    ``amazon.nova-canvas-v1%3A0`` is signed as ``...%253A0``.

    Args:
        method: HTTP verb.
        host: Request host (signed, not returned in headers).
        path: URL path as it will be sent on the wire.
        payload: Exact request body bytes.
        region: Signing region (e.g., ``us-east-1``).
        service: Signing service name (e.g., ``bedrock``).
        credentials: Access key pair and optional session token.
        headers: Additional headers to sign and send.
        now: Signing time; defaults to the current UTC time.

    Returns:
        SignedRequest whose ``headers`` include ``authorization``.
    """
    amz_date = (now or datetime.now(UTC)).astimezone(UTC).strftime(SIGV4_TIMESTAMP)
    auth = SigV4Auth(
        Credentials(
            credentials.access_key_id,
            credentials.secret_access_key,
            credentials.session_token,
        ),
        service,
        region,
    )

    request = AWSRequest(
        method=method.upper(),
        url=f"https://{host}{path}",
        data=payload,
        headers={k.lower(): v.strip() for k, v in (headers or {}).items()},
    )
    request.context["timestamp"] = amz_date
    request.headers["x-amz-date"] = amz_date
    if credentials.session_token:
        request.headers["x-amz-security-token"] = credentials.session_token

    canonical_request = auth.canonical_request(request)
    string_to_sign = auth.string_to_sign(request, canonical_request)
    signature = auth.signature(string_to_sign, request)
    signed_headers = auth.signed_headers(auth.headers_to_sign(request))

    outgoing = {name.lower(): value for name, value in request.headers.items()}
    outgoing["authorization"] = (
        f"{ALGORITHM} Credential={auth.scope(request)}, "
        f"SignedHeaders={signed_headers}, Signature={signature}"
    )
    return SignedRequest(
        headers=outgoing,
        canonical_request=canonical_request,
        string_to_sign=string_to_sign,
        signature=signature,
    )
