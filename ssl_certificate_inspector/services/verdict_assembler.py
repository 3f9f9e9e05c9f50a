"""
检查结论组装服务
"""
from datetime import datetime
from typing import List, Optional
import logging

from ..models import (
    CertificateVerdict,
    ExtractedFields,
    ProbeOutcome,
    ProbeStatus,
    SecurityInfo,
    TLSSession,
)
from .certificate_extractor import CertificateFieldExtractor
from .certificate_parser import CertificateParser
from .error_handler import CertificateCheckError, ProbeErrorHandler


class VerdictAssembler:
    """检查结论组装器"""

    FALLBACK_ISSUER = "Valid Certificate Authority"

    def __init__(
        self,
        parser: Optional[CertificateParser] = None,
        extractor: Optional[CertificateFieldExtractor] = None,
    ):
        self.parser = parser or CertificateParser()
        self.extractor = extractor or CertificateFieldExtractor()
        self.error_handler = ProbeErrorHandler()
        self.logger = logging.getLogger(__name__)

    def extract_fields(self, session: Optional[TLSSession], now: Optional[datetime] = None) -> ExtractedFields:
        """解析会话证书并提取字段，失败时返回带错误信息的空结果"""
        try:
            cert = self.parser.parse_session(session)
        except CertificateCheckError as e:
            self.logger.warning(f"解析证书失败: {e.message}")
            return ExtractedFields(error=f"Error extracting certificate details: {e.message}")
        return self.extractor.extract(cert, now)

    def assemble(
        self,
        domain: str,
        outcome: ProbeOutcome,
        fields: Optional[ExtractedFields] = None,
        now: Optional[datetime] = None,
    ) -> CertificateVerdict:
        """
        根据探测结果和证书字段组装检查结论

        Args:
            domain: 规范化后的域名
            outcome: 探测结果
            fields: 已提取的证书字段，为None时从会话中提取
            now: 当前时间

        Returns:
            CertificateVerdict: 检查结论
        """
        if outcome.status == ProbeStatus.UNREACHABLE:
            return CertificateVerdict(
                domain=domain,
                valid=False,
                error=outcome.error or outcome.strict_error or 'Could not establish connection',
            )

        if fields is None:
            fields = self.extract_fields(outcome.session, now)

        verdict = CertificateVerdict(
            domain=domain,
            valid=outcome.status == ProbeStatus.TRUSTED,
            issuer=fields.issuer,
            valid_from=fields.valid_from,
            valid_to=fields.valid_to,
            days_remaining=fields.days_remaining,
            security_info=self._security_info(outcome.session, fields),
            common_name=fields.common_name,
            subject_alt_names=list(fields.subject_alt_names),
        )

        if verdict.valid:
            # 严格模式握手成功即为权威结论，即使证书详情无法解析
            if fields.is_empty:
                verdict.issuer = self.FALLBACK_ISSUER
            if verdict.valid_to is None:
                verdict.error = fields.error or "Error extracting certificate details: no certificate returned"
            return verdict

        verdict.error = self._untrusted_error(domain, outcome.strict_error, fields.subject_alt_names)
        return verdict

    def failed(self, domain: str, error: BaseException) -> CertificateVerdict:
        """将未预期的异常转换为失败结论"""
        classified = self.error_handler.classify(error)
        message = classified.message or 'Unknown error checking SSL certificate'
        return CertificateVerdict(domain=domain, valid=False, error=message)

    def _untrusted_error(self, domain: str, strict_error: Optional[str], alt_names: List[str]) -> str:
        message = strict_error or 'Certificate validation failed'
        if not self.error_handler.is_hostname_mismatch(message):
            return message

        if alt_names:
            return (
                "Hostname/IP does not match certificate's altnames: "
                f"Host: {domain} is not in the cert's altnames: {', '.join(alt_names)}"
            )
        if domain not in message:
            return f"{message} (Host: {domain})"
        return message

    def _security_info(self, session: Optional[TLSSession], fields: ExtractedFields) -> Optional[SecurityInfo]:
        if session is None:
            return None

        cipher_suite = session.cipher[0] if session.cipher else None
        return SecurityInfo(
            protocol=session.protocol,
            cipher_suite=cipher_suite,
            key_exchange=self._key_exchange(cipher_suite, session.protocol),
            certificate_chain=list(fields.certificate_chain),
        )

    def _key_exchange(self, cipher_suite: Optional[str], protocol: Optional[str]) -> Optional[str]:
        if not cipher_suite:
            return None
        # TLS 1.3 套件名不含密钥交换算法，协商总是(EC)DHE
        if protocol == 'TLSv1.3' or cipher_suite.startswith('TLS_'):
            return 'ECDHE'
        for prefix in ('ECDHE', 'DHE', 'ECDH', 'DH', 'PSK', 'SRP'):
            if cipher_suite.startswith(prefix):
                return prefix
        return 'RSA'
