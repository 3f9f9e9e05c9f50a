"""
证书字段提取服务
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional
import logging

from ..interfaces import CertificateExtractorInterface
from ..models import ChainLink, ExtractedFields, RawCertificate
from .expiry_calculator import ExpiryCalculator


class CertificateFieldExtractor(CertificateExtractorInterface):
    """证书字段提取器"""

    UNKNOWN_ISSUER = "Unknown Issuer"

    def __init__(self, expiry_calculator: Optional[ExpiryCalculator] = None):
        self.expiry_calculator = expiry_calculator or ExpiryCalculator()
        self.logger = logging.getLogger(__name__)

    def extract(self, cert: Optional[RawCertificate], now: Optional[datetime] = None) -> ExtractedFields:
        """
        提取证书字段

        提取失败不会抛出异常：出错的字段留空，原因记录在 error 中。

        Args:
            cert: 解析后的证书，可以为None
            now: 当前时间，默认为当前UTC时间

        Returns:
            ExtractedFields: 提取结果，证书为空时返回空结果
        """
        fields = ExtractedFields()
        if cert is None:
            return fields

        now = now or datetime.now(timezone.utc)

        try:
            fields.issuer = self.resolve_issuer(cert.issuer)
            fields.common_name = cert.common_name
            fields.subject_alt_names = list(cert.subject_alt_names or [])
        except Exception as e:
            self.logger.warning(f"解析证书颁发者失败: {type(e).__name__}: {str(e)}")
            fields.error = f"Error extracting certificate details: {str(e)}"

        try:
            if cert.not_after is None:
                raise ValueError("certificate has no expiry date")
            fields.valid_from = cert.not_before
            fields.valid_to = cert.not_after
            fields.days_remaining = self.expiry_calculator.calculate_days_remaining(cert.not_after, now)
        except Exception as e:
            self.logger.warning(f"解析证书有效期失败: {type(e).__name__}: {str(e)}")
            fields.valid_from = fields.valid_to = fields.days_remaining = None
            fields.error = fields.error or f"Error extracting certificate details: {str(e)}"

        fields.certificate_chain = self.walk_chain(cert)
        return fields

    def resolve_issuer(self, issuer: Optional[Dict[str, str]]) -> str:
        """
        解析证书颁发者显示名称

        优先使用组织名称(O)，若通用名称(CN)未包含在O中则追加；否则使用CN。
        """
        if not issuer:
            return self.UNKNOWN_ISSUER

        organization = issuer.get('O')
        common_name = issuer.get('CN')

        if organization:
            if common_name and common_name not in organization:
                return f"{organization} {common_name}"
            return organization
        if common_name:
            return common_name
        return self.UNKNOWN_ISSUER

    def walk_chain(self, cert: RawCertificate) -> List[ChainLink]:
        """
        沿颁发者链接向上遍历证书链

        到达根证书（链接指向自身）或指纹重复时停止，防止格式错误的链导致死循环。

        Args:
            cert: 叶子证书

        Returns:
            List[ChainLink]: 叶子之上的证书链
        """
        chain: List[ChainLink] = []
        seen = {cert.fingerprint}
        current = cert.issuer_certificate

        try:
            while current is not None and current.fingerprint not in seen:
                chain.append(ChainLink(
                    subject=dict(current.subject),
                    issuer=dict(current.issuer),
                    valid_from=current.not_before,
                    valid_to=current.not_after,
                    fingerprint=current.fingerprint,
                ))
                seen.add(current.fingerprint)
                current = current.issuer_certificate
        except Exception as e:
            self.logger.warning(f"遍历证书链失败，返回部分结果: {type(e).__name__}: {str(e)}")

        return chain
