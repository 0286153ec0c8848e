"""第三方平台请求签名

- 支付宝：RSA2（SHA256withRSA）签名，签名内容为按键排序的 k=v&k=v 串
- 腾讯云：TC3-HMAC-SHA256 签名，密钥按 日期 -> 服务 -> tc3_request 逐级派生
- 钉钉：以毫秒时间戳为内容的 HMAC-SHA256 签名

这里都是纯函数，不做任何网络请求。
"""

import base64
import binascii
import hashlib
import hmac
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote, urlencode

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from pkg.toolkit.timer import utc_date_string

from .exceptions import ConfigError

# =========================================================
# 支付宝 RSA2
# =========================================================


def build_canonical_string(
    params: Mapping[str, Any],
    *,
    urlencode_values: bool = False,
    except_keys: Iterable[str] = ("sign",),
) -> str:
    """
    构建待签名串：按键升序排序后拼接为 k1=v1&k2=v2

    Args:
        params: 参与签名的参数
        urlencode_values: 是否对值做 RFC 3986 编码（支付宝签名时不编码）
        except_keys: 不参与签名的键，默认排除 sign

    Returns:
        待签名字符串
    """
    excluded = set(except_keys)
    parts = []
    for key in sorted(params):
        if key in excluded:
            continue
        value = str(params[key])
        parts.append(f"{key}={quote(value, safe='') if urlencode_values else value}")
    return "&".join(parts)


def load_rsa_private_key(key: str) -> rsa.RSAPrivateKey:
    """
    加载 RSA 私钥

    支持两种形式：
    - 完整 PEM（带 -----BEGIN ... 头尾）
    - 支付宝开放平台导出的裸 base64 密钥内容（PKCS#1 或 PKCS#8，不带头尾）
    """
    if not key:
        raise ConfigError("no RSA private key set.")

    try:
        if "-----BEGIN" in key:
            private_key = serialization.load_pem_private_key(key.encode("utf-8"), password=None)
        else:
            der = base64.b64decode("".join(key.split()), validate=True)
            private_key = serialization.load_der_private_key(der, password=None)
    except (ValueError, TypeError, binascii.Error, UnsupportedAlgorithm) as e:
        raise ConfigError(f"Invalid RSA private key: {e}") from e

    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise ConfigError("Private key is not an RSA key.")
    return private_key


def rsa_sha256_sign(content: str, private_key: str) -> str:
    """
    SHA256withRSA 签名并 base64 编码

    Raises:
        ConfigError: 未配置私钥或私钥无法解析
    """
    key = load_rsa_private_key(private_key)
    signature = key.sign(content.encode("utf-8"), padding.PKCS1v15(), hashes.SHA256())
    return base64.b64encode(signature).decode("ascii")


def alipay_sign(params: Mapping[str, Any], private_key: str) -> str:
    """
    支付宝开放平台请求签名

    @see https://opendocs.alipay.com/open/289/105656
    """
    return rsa_sha256_sign(build_canonical_string(params), private_key)


# =========================================================
# 腾讯云 TC3-HMAC-SHA256
# =========================================================

TC3_ALGORITHM = "TC3-HMAC-SHA256"
TC3_REQUEST = "tc3_request"
TC3_SIGNED_HEADERS = "content-type;host"


def _hmac_sha256(key: bytes, msg: str) -> bytes:
    return hmac.new(key, msg.encode("utf-8"), hashlib.sha256).digest()


def _sha256_hex(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def service_from_host(host: str) -> str:
    """服务名为域名的第一段，如 sts.tencentcloudapi.com -> sts"""
    return host.split(".")[0]


def tc3_credential_scope(timestamp: int, service: str) -> str:
    """凭证范围：<UTC 日期>/<service>/tc3_request"""
    return f"{utc_date_string(timestamp)}/{service}/{TC3_REQUEST}"


def tc3_canonical_query(query: Mapping[str, Any]) -> str:
    """按键排序并编码的查询串，签名与实际请求共用同一个串"""
    return urlencode(sorted((str(k), str(v)) for k, v in query.items()))


def tc3_derive_signing_key(secret_key: str, date: str, service: str) -> bytes:
    """
    派生签名密钥

    secretDate = HMAC("TC3" + secretKey, date)
    secretService = HMAC(secretDate, service)
    secretSigning = HMAC(secretService, "tc3_request")
    """
    secret_date = _hmac_sha256(f"TC3{secret_key}".encode("utf-8"), date)
    secret_service = _hmac_sha256(secret_date, service)
    return _hmac_sha256(secret_service, TC3_REQUEST)


def tc3_sign(
    method: str,
    host: str,
    query: Mapping[str, Any],
    payload: str,
    headers: Mapping[str, Any],
    credential_scope: str,
    secret_key: str,
) -> str:
    """
    计算 TC3-HMAC-SHA256 签名

    Args:
        method: HTTP 方法
        host: 请求域名
        query: 查询参数
        payload: 请求体（GET 为空串）
        headers: 至少包含 Content-Type 与 X-TC-Timestamp
        credential_scope: tc3_credential_scope() 的结果
        secret_key: SecretKey（或临时密钥 TmpSecretKey）

    Returns:
        十六进制签名
    """
    if not secret_key:
        raise ConfigError("Tencent Cloud secret key cannot be empty.")

    canonical_request = "\n".join(
        [
            method.upper(),
            "/",
            tc3_canonical_query(query),
            f"content-type:{headers['Content-Type']}\nhost:{host}\n",
            TC3_SIGNED_HEADERS,
            _sha256_hex(payload),
        ]
    )

    timestamp = int(headers["X-TC-Timestamp"])
    string_to_sign = "\n".join(
        [
            TC3_ALGORITHM,
            str(timestamp),
            credential_scope,
            _sha256_hex(canonical_request),
        ]
    )

    date, service, _ = credential_scope.split("/", 2)
    signing_key = tc3_derive_signing_key(secret_key, date, service)
    return hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


def tc3_authorization(secret_id: str, credential_scope: str, signature: str) -> str:
    return (
        f"{TC3_ALGORITHM} Credential={secret_id}/{credential_scope}, "
        f"SignedHeaders={TC3_SIGNED_HEADERS}, Signature={signature}"
    )


@dataclass(frozen=True)
class SignedRequestContext:
    """一次腾讯云签名调用的上下文，仅在单次请求内有效，不做持久化"""

    method: str
    host: str
    action: str
    version: str
    timestamp: int
    secret_id: str
    credential_scope: str
    signature: str
    query: dict[str, Any] = field(default_factory=dict)
    payload: str = ""
    extra_headers: dict[str, str] = field(default_factory=dict)
    content_type: str = "application/x-www-form-urlencoded; charset=utf-8"

    @classmethod
    def build(
        cls,
        *,
        method: str,
        host: str,
        action: str,
        version: str,
        secret_id: str,
        secret_key: str,
        timestamp: int,
        query: Mapping[str, Any] | None = None,
        payload: str = "",
        extra_headers: Mapping[str, str] | None = None,
    ) -> "SignedRequestContext":
        """计算签名并生成上下文"""
        method = method.upper()
        query = dict(query or {})
        credential_scope = tc3_credential_scope(timestamp, service_from_host(host))
        headers = {"Content-Type": cls.content_type, "X-TC-Timestamp": timestamp}
        signature = tc3_sign(method, host, query, payload, headers, credential_scope, secret_key)

        return cls(
            method=method,
            host=host,
            action=action,
            version=version,
            timestamp=timestamp,
            secret_id=secret_id,
            credential_scope=credential_scope,
            signature=signature,
            query=query,
            payload=payload,
            extra_headers=dict(extra_headers or {}),
        )

    @property
    def url(self) -> str:
        query_string = tc3_canonical_query(self.query)
        return f"https://{self.host}/?{query_string}" if query_string else f"https://{self.host}/"

    @property
    def authorization(self) -> str:
        return tc3_authorization(self.secret_id, self.credential_scope, self.signature)

    def headers(self) -> dict[str, str]:
        return {
            **self.extra_headers,
            "X-TC-Action": self.action,
            "X-TC-Timestamp": str(self.timestamp),
            "X-TC-Version": self.version,
            "Content-Type": self.content_type,
            "Authorization": self.authorization,
        }


# =========================================================
# 钉钉
# =========================================================


def dingtalk_sign(timestamp_ms: int, secret: str) -> str:
    """base64(HMAC-SHA256(secret, timestamp))"""
    digest = hmac.new(secret.encode("utf-8"), str(timestamp_ms).encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")
