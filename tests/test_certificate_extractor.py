"""
证书字段提取器测试
"""
from datetime import datetime, timezone, timedelta

from ssl_certificate_inspector.models import RawCertificate
from ssl_certificate_inspector.services.certificate_extractor import CertificateFieldExtractor
from ssl_certificate_inspector.services.certificate_parser import CertificateParser

from certificate_fixtures import build_session


NOW = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_raw(subject=None, issuer=None, not_before=None, not_after=None, fingerprint='AA'):
    return RawCertificate(
        subject=subject if subject is not None else {'CN': 'example.com'},
        issuer=issuer if issuer is not None else {'O': "Let's Encrypt", 'CN': 'R3'},
        not_before=not_before or NOW - timedelta(days=30),
        not_after=not_after,
        fingerprint=fingerprint,
        subject_alt_names=['DNS:example.com'],
    )


class TestCertificateFieldExtractor:
    """证书字段提取器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.extractor = CertificateFieldExtractor()

    def test_resolve_issuer(self):
        """测试颁发者显示名称规则"""
        resolve = self.extractor.resolve_issuer

        assert resolve({'O': "Let's Encrypt", 'CN': 'R3'}) == "Let's Encrypt R3"
        assert resolve({'O': 'DigiCert Inc', 'CN': 'DigiCert'}) == 'DigiCert Inc'
        assert resolve({'O': 'Example Corp'}) == 'Example Corp'
        assert resolve({'CN': 'Internal CA'}) == 'Internal CA'
        assert resolve({'C': 'US'}) == 'Unknown Issuer'
        assert resolve({}) == 'Unknown Issuer'
        assert resolve(None) == 'Unknown Issuer'

    def test_extract_days_remaining(self):
        """测试剩余天数计算"""
        cert = make_raw(not_after=NOW + timedelta(days=45, hours=12))

        fields = self.extractor.extract(cert, now=NOW)

        assert fields.days_remaining == 46
        assert fields.valid_to == NOW + timedelta(days=45, hours=12)
        assert fields.issuer == "Let's Encrypt R3"
        assert fields.common_name == 'example.com'
        assert fields.subject_alt_names == ['DNS:example.com']
        assert fields.error is None

    def test_extract_expired(self):
        """测试已过期证书的剩余天数为负数"""
        cert = make_raw(not_after=NOW - timedelta(days=3))

        fields = self.extractor.extract(cert, now=NOW)

        assert fields.days_remaining == -3

    def test_extract_none(self):
        """测试没有证书时返回空结果"""
        fields = self.extractor.extract(None, now=NOW)

        assert fields.is_empty
        assert fields.certificate_chain == []

    def test_extract_missing_expiry(self):
        """测试缺少过期时间时不编造日期"""
        cert = make_raw(not_after=None)

        fields = self.extractor.extract(cert, now=NOW)

        assert fields.issuer == "Let's Encrypt R3"
        assert fields.valid_from is None
        assert fields.valid_to is None
        assert fields.days_remaining is None
        assert fields.error.startswith('Error extracting certificate details:')

    def test_walk_chain(self):
        """测试证书链遍历在根证书处停止"""
        parser = CertificateParser()
        leaf = parser.parse_session(build_session('example.com'))

        chain = self.extractor.walk_chain(leaf)

        assert [link.subject['CN'] for link in chain] == ['R3', 'Test Root CA']
        assert chain[1].subject == chain[1].issuer
        assert chain[0].fingerprint != chain[1].fingerprint

    def test_walk_chain_cycle(self):
        """测试格式错误的循环证书链不会死循环"""
        leaf = make_raw(not_after=NOW, fingerprint='01')
        first = make_raw(subject={'CN': 'A'}, not_after=NOW, fingerprint='02')
        second = make_raw(subject={'CN': 'B'}, not_after=NOW, fingerprint='03')
        leaf.issuer_certificate = first
        first.issuer_certificate = second
        second.issuer_certificate = first

        chain = self.extractor.walk_chain(leaf)

        assert [link.fingerprint for link in chain] == ['02', '03']

    def test_walk_chain_back_to_leaf(self):
        """测试链接回到叶子证书时停止"""
        leaf = make_raw(not_after=NOW, fingerprint='01')
        leaf.issuer_certificate = leaf

        assert self.extractor.walk_chain(leaf) == []

    def test_chain_link_serialization(self):
        """测试证书链序列化格式"""
        parser = CertificateParser()
        leaf = parser.parse_session(build_session('example.com'))

        link = self.extractor.walk_chain(leaf)[0].to_dict()

        assert set(link) == {'subject', 'issuer', 'validFrom', 'validTo', 'fingerprint'}
        assert link['validTo'].endswith('Z')
        assert link['issuer']['CN'] == 'Test Root CA'
