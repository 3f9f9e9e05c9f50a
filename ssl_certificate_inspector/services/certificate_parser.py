"""
证书解析服务

将TLS握手得到的DER证书转换为带上级链接的 RawCertificate 结构。
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from cryptography import x509
from cryptography.hazmat.primitives import hashes

from ..models import RawCertificate, TLSSession
from .error_handler import ExtractionError


def name_to_dict(name: x509.Name) -> Dict[str, str]:
    """
    将X.509名称转换为短名称字典，如 {'CN': ..., 'O': ..., 'C': ...}

    同名属性出现多次时以", "连接。
    """
    result: Dict[str, str] = {}
    for attribute in name:
        key = attribute.rfc4514_attribute_name
        value = attribute.value
        if isinstance(value, bytes):
            value = value.decode('utf-8', errors='replace')
        if key in result:
            result[key] = f"{result[key]}, {value}"
        else:
            result[key] = str(value)
    return result


def format_fingerprint(digest: bytes) -> str:
    """格式化指纹为冒号分隔的大写十六进制"""
    return ':'.join(f"{byte:02X}" for byte in digest)


def _validity(cert: x509.Certificate, attribute: str) -> datetime:
    # cryptography 42 起提供带时区的 *_utc 属性
    value = getattr(cert, f"{attribute}_utc", None)
    if value is None:
        value = getattr(cert, attribute).replace(tzinfo=timezone.utc)
    return value


class CertificateParser:
    """证书解析器"""

    def __init__(self):
        """初始化证书解析器"""
        self.logger = logging.getLogger(__name__)

    def load(self, der: bytes) -> x509.Certificate:
        """
        加载DER格式证书

        Raises:
            ExtractionError: 证书格式错误
        """
        try:
            return x509.load_der_x509_certificate(der)
        except (ValueError, TypeError) as e:
            raise ExtractionError(f"Malformed certificate: {str(e)}")

    def subject_alt_names(self, cert: x509.Certificate) -> List[str]:
        """
        读取主题备用名称，格式如 "DNS:example.com"、"IP Address:1.2.3.4"

        Args:
            cert: 证书

        Returns:
            List[str]: 备用名称列表，缺失时为空
        """
        try:
            extension = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        except x509.ExtensionNotFound:
            return []
        except ValueError as e:
            self.logger.warning(f"证书的SAN扩展格式错误: {str(e)}")
            return []

        names = [f"DNS:{name}" for name in extension.value.get_values_for_type(x509.DNSName)]
        names.extend(
            f"IP Address:{address}"
            for address in extension.value.get_values_for_type(x509.IPAddress)
        )
        return names

    def to_raw(self, cert: x509.Certificate) -> RawCertificate:
        """
        转换为 RawCertificate（不含上级链接）

        日期或扩展字段格式错误时对应字段留空，不抛出异常。

        Raises:
            ExtractionError: 主题或颁发者名称无法解析
        """
        try:
            not_before: Optional[datetime] = _validity(cert, 'not_valid_before')
            not_after: Optional[datetime] = _validity(cert, 'not_valid_after')
        except ValueError as e:
            self.logger.warning(f"证书有效期格式错误: {str(e)}")
            not_before = not_after = None

        # 名称字段在首次访问时才解析，格式错误的名称在这里才会暴露
        try:
            subject = name_to_dict(cert.subject)
            issuer = name_to_dict(cert.issuer)
            fingerprint = format_fingerprint(cert.fingerprint(hashes.SHA256()))
        except ValueError as e:
            raise ExtractionError(f"Malformed certificate: {str(e)}")

        return RawCertificate(
            subject=subject,
            issuer=issuer,
            not_before=not_before,
            not_after=not_after,
            fingerprint=fingerprint,
            subject_alt_names=self.subject_alt_names(cert),
        )

    def parse_der(self, der: bytes) -> RawCertificate:
        """解析单个DER证书"""
        return self.to_raw(self.load(der))

    def parse_session(self, session: Optional[TLSSession]) -> Optional[RawCertificate]:
        """
        解析会话中的证书链并建立上级链接

        上级证书按"颁发者名称 == 主题名称"在出示的证书中查找；自签名证书链接到自身。
        无法解析的中间证书会被跳过。

        Args:
            session: TLS会话

        Returns:
            Optional[RawCertificate]: 叶子证书，会话中没有证书时为None

        Raises:
            ExtractionError: 叶子证书无法解析
        """
        if session is None or not session.leaf:
            return None

        leaf = self.load(session.leaf)
        loaded = [leaf]
        raw = [self.to_raw(leaf)]
        for der in session.chain:
            if der == session.leaf:
                continue
            try:
                cert = self.load(der)
                raw.append(self.to_raw(cert))
            except ExtractionError as e:
                self.logger.warning(f"跳过无法解析的中间证书: {e.message}")
                continue
            loaded.append(cert)

        for index, cert in enumerate(loaded):
            if cert.issuer == cert.subject:
                raw[index].issuer_certificate = raw[index]
                continue
            for candidate_index, candidate in enumerate(loaded):
                if candidate_index != index and candidate.subject == cert.issuer:
                    raw[index].issuer_certificate = raw[candidate_index]
                    break

        return raw[0]
