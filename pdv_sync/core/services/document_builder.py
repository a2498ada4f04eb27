"""
NFC-e (model 65) document builder.

Renders a committed sale into the fiscal XML and attaches a signature
block. Pure transformation: no I/O, no clock, no randomness. The emission
timestamp, document number and emission mode are inputs, so building and
signing the same sale twice yields byte-identical output.

Signing is a stand-in for XMLDSig with an A1 certificate: the digest is a
SHA-256 of the unsigned XML and the signature an HMAC-SHA256 of the digest
with the configured key.
"""

import base64
import hashlib
import hmac
import xml.etree.ElementTree as ET
from datetime import datetime

from pdv_sync.config import get_logger
from pdv_sync.core.entities.fiscal_document import (
    EmissionMode,
    FiscalDocument,
    SignedDocument,
)
from pdv_sync.core.entities.sale import Sale
from pdv_sync.core.exceptions import SigningError, ValidationError

logger = get_logger(__name__)

NFE_NAMESPACE = "http://www.portalfiscal.inf.br/nfe"
DSIG_NAMESPACE = "http://www.w3.org/2000/09/xmldsig#"
NFE_VERSION = "4.00"
NFCE_MODEL = "65"
QR_CODE_VERSION = "2"

ET.register_namespace("", NFE_NAMESPACE)
ET.register_namespace("ds", DSIG_NAMESPACE)


def _nfe(tag: str) -> str:
    return f"{{{NFE_NAMESPACE}}}{tag}"


def _ds(tag: str) -> str:
    return f"{{{DSIG_NAMESPACE}}}{tag}"


def _sub(parent: ET.Element, tag: str, text: str | None = None, **attrib: str) -> ET.Element:
    element = ET.SubElement(parent, _nfe(tag), attrib)
    if text is not None:
        element.text = text
    return element


def _money(value: float) -> str:
    return f"{value:.2f}"


def format_emission_time(value: datetime) -> str:
    """dhEmi / dhCont format."""
    return value.isoformat(timespec="seconds")


def mod11_check_digit(digits: str) -> int:
    """Check digit of the access key: weights 2..9 cycling from the right."""
    total = 0
    weight = 2
    for digit in reversed(digits):
        total += int(digit) * weight
        weight = 2 if weight == 9 else weight + 1
    remainder = total % 11
    return 0 if remainder < 2 else 11 - remainder


class FiscalDocumentBuilder:
    """
    Builds and signs NFC-e documents.

    The mode only flips tpEmis (1 normal, 9 contingency) and adds the
    contingency justification; every document is queued the same way.
    """

    def __init__(
        self,
        uf_code: int,
        series: int,
        environment: int,
        issuer_cnpj: str,
        software_version: str,
        signing_key: str,
        contingency_reason: str,
        nature_of_operation: str = "VENDA",
        qr_code_url: str = "https://www.homologacao.nfce.fazenda.sp.gov.br/qrcode",
        csc_id: str = "000001",
        csc: str = "",
    ) -> None:
        if len(issuer_cnpj) != 14 or not issuer_cnpj.isdigit():
            raise ValidationError("issuer_cnpj", "must be 14 digits", issuer_cnpj)
        if not csc_id.isdigit():
            raise ValidationError("csc_id", "must be numeric", csc_id)
        self.uf_code = uf_code
        self.series = series
        self.environment = environment
        self.issuer_cnpj = issuer_cnpj
        self.software_version = software_version
        self.contingency_reason = contingency_reason
        self.nature_of_operation = nature_of_operation
        self.qr_code_url = qr_code_url
        self.csc_id = csc_id
        self._csc = csc
        self._signing_key = signing_key.encode("utf-8")

    def access_key(
        self,
        sale_id: int,
        document_number: int,
        mode: EmissionMode,
        emitted_at: datetime,
    ) -> str:
        """
        Compose the 44-digit chave de acesso.

        cUF(2) AAMM(4) CNPJ(14) mod(2) serie(3) nNF(9) tpEmis(1) cNF(8) cDV(1).
        cNF is derived from the sale id so the key is reproducible.
        """
        body = (
            f"{self.uf_code:02d}"
            f"{emitted_at:%y%m}"
            f"{self.issuer_cnpj}"
            f"{NFCE_MODEL}"
            f"{self.series:03d}"
            f"{document_number:09d}"
            f"{mode.tp_emis}"
            f"{sale_id % 10**8:08d}"
        )
        return f"{body}{mod11_check_digit(body)}"

    def qr_code(
        self,
        access_key: str,
        mode: EmissionMode,
        emitted_at: datetime,
        total: float,
    ) -> str:
        """
        Consulta URL printed as the consumer QR code.

        Online: chave|versao|tpAmb|idCSC|hash. Contingency documents also
        carry the emission day and the total, since the authority has not
        seen them yet. The hash is the uppercase SHA-1 of the parameters
        followed by the CSC.
        """
        if mode is EmissionMode.CONTINGENCY:
            params = (
                f"{access_key}|{QR_CODE_VERSION}|{self.environment}"
                f"|{emitted_at:%d}|{_money(total)}|{int(self.csc_id)}"
            )
        else:
            params = f"{access_key}|{QR_CODE_VERSION}|{self.environment}|{int(self.csc_id)}"
        digest = hashlib.sha1(f"{params}{self._csc}".encode()).hexdigest().upper()
        return f"{self.qr_code_url}?p={params}|{digest}"

    def build(
        self,
        sale: Sale,
        mode: EmissionMode,
        document_number: int,
        emitted_at: datetime,
    ) -> FiscalDocument:
        """Render an unsigned NFC-e for a committed sale."""
        if sale.id is None:
            raise ValidationError("sale.id", "sale must be committed before rendering")
        if document_number <= 0:
            raise ValidationError("document_number", "must be positive", document_number)

        key = self.access_key(sale.id, document_number, mode, emitted_at)

        root = ET.Element(_nfe("NFe"))
        inf = _sub(root, "infNFe", Id=f"NFe{key}", versao=NFE_VERSION)

        ide = _sub(inf, "ide")
        _sub(ide, "cUF", f"{self.uf_code:02d}")
        _sub(ide, "cNF", key[35:43])
        _sub(ide, "natOp", self.nature_of_operation)
        _sub(ide, "mod", NFCE_MODEL)
        _sub(ide, "serie", str(self.series))
        _sub(ide, "nNF", str(document_number))
        _sub(ide, "dhEmi", format_emission_time(emitted_at))
        _sub(ide, "tpNF", "1")
        _sub(ide, "tpImp", "4")
        _sub(ide, "tpEmis", mode.tp_emis)
        _sub(ide, "cDV", key[-1])
        _sub(ide, "tpAmb", str(self.environment))
        _sub(ide, "finNFe", "1")
        _sub(ide, "indFinal", "1")
        _sub(ide, "indPres", "1")
        _sub(ide, "procEmi", "0")
        _sub(ide, "verProc", self.software_version)
        if mode is EmissionMode.CONTINGENCY:
            _sub(ide, "dhCont", format_emission_time(emitted_at))
            _sub(ide, "xJust", self.contingency_reason)

        emit = _sub(inf, "emit")
        _sub(emit, "CNPJ", self.issuer_cnpj)

        for index, item in enumerate(sale.items, start=1):
            det = _sub(inf, "det", nItem=str(index))
            prod = _sub(det, "prod")
            _sub(prod, "cProd", str(item.id if item.id is not None else index))
            _sub(prod, "xProd", item.description)
            _sub(prod, "qCom", f"{item.quantity:.4f}")
            _sub(prod, "vUnCom", _money(item.unit_price))
            _sub(prod, "vProd", _money(item.line_total))
            imposto = _sub(det, "imposto")
            _sub(imposto, "vTotTrib", _money(item.tax_total))

        total = _sub(inf, "total")
        icms_tot = _sub(total, "ICMSTot")
        _sub(icms_tot, "vICMS", _money(sale.tax_totals.icms))
        _sub(icms_tot, "vProd", _money(sum(i.line_total for i in sale.items)))
        _sub(icms_tot, "vPIS", _money(sale.tax_totals.pis))
        _sub(icms_tot, "vCOFINS", _money(sale.tax_totals.cofins))
        _sub(icms_tot, "vNF", _money(sale.total))
        _sub(icms_tot, "vTotTrib", _money(sale.tax_totals.total))
        ibscbs_tot = _sub(total, "IBSCBSTot")
        _sub(ibscbs_tot, "vIBS", _money(sale.tax_totals.ibs))
        _sub(ibscbs_tot, "vCBS", _money(sale.tax_totals.cbs))

        pag = _sub(inf, "pag")
        det_pag = _sub(pag, "detPag")
        _sub(det_pag, "tPag", sale.payment_method.tpag_code)
        _sub(det_pag, "vPag", _money(sale.total))

        supl = _sub(root, "infNFeSupl")
        _sub(supl, "qrCode", self.qr_code(key, mode, emitted_at, sale.total))
        _sub(supl, "urlChave", self.qr_code_url)

        return FiscalDocument(
            sale_id=sale.id,
            document_number=document_number,
            series=self.series,
            mode=mode,
            emitted_at=emitted_at,
            access_key=key,
            xml=ET.tostring(root, encoding="unicode"),
        )

    def sign(self, document: FiscalDocument) -> SignedDocument:
        """
        Attach the signature block.

        Raises:
            SigningError: The XML is malformed, does not match the document
                metadata, or is already signed.
        """
        if isinstance(document, SignedDocument):
            raise SigningError("document is already signed", document.sale_id)

        try:
            root = ET.fromstring(document.xml)
        except ET.ParseError as e:
            raise SigningError(f"malformed XML: {e}", document.sale_id) from e

        if root.tag != _nfe("NFe"):
            raise SigningError("root element is not NFe", document.sale_id)
        if any(child.tag.rsplit("}", 1)[-1] == "Signature" for child in root):
            raise SigningError("document is already signed", document.sale_id)

        inf = root.find(_nfe("infNFe"))
        if inf is None:
            raise SigningError("infNFe element is missing", document.sale_id)
        if inf.get("Id") != f"NFe{document.access_key}":
            raise SigningError("infNFe Id does not match the access key", document.sale_id)

        ide = inf.find(_nfe("ide"))
        header = {
            "nNF": str(document.document_number),
            "dhEmi": format_emission_time(document.emitted_at),
            "tpEmis": document.mode.tp_emis,
        }
        for tag, expected in header.items():
            found = ide.findtext(_nfe(tag)) if ide is not None else None
            if found != expected:
                raise SigningError(
                    f"{tag} is {found!r}, expected {expected!r}", document.sale_id
                )

        digest = base64.b64encode(
            hashlib.sha256(document.xml.encode("utf-8")).digest()
        ).decode("ascii")
        signature = base64.b64encode(
            hmac.new(self._signing_key, digest.encode("ascii"), hashlib.sha256).digest()
        ).decode("ascii")

        sig = ET.SubElement(root, _ds("Signature"))
        signed_info = ET.SubElement(sig, _ds("SignedInfo"))
        reference = ET.SubElement(
            signed_info, _ds("Reference"), {"URI": f"#NFe{document.access_key}"}
        )
        ET.SubElement(
            reference,
            _ds("DigestMethod"),
            {"Algorithm": "http://www.w3.org/2001/04/xmlenc#sha256"},
        )
        ET.SubElement(reference, _ds("DigestValue")).text = digest
        ET.SubElement(sig, _ds("SignatureValue")).text = signature

        logger.debug(
            "fiscal_document_signed",
            sale_id=document.sale_id,
            document_number=document.document_number,
            mode=document.mode.value,
        )

        return SignedDocument(
            **document.model_dump(exclude={"xml"}),
            xml=ET.tostring(root, encoding="unicode"),
            digest=digest,
            signature=signature,
        )

    def render(self, sale: Sale) -> SignedDocument:
        """
        Build and sign the document of a freshly committed sale.

        Uses the sale's reserved document number, its offline hint and its
        creation time as the emission timestamp.
        """
        if sale.document_number is None:
            raise ValidationError("sale.document_number", "no document number reserved")
        unsigned = self.build(
            sale,
            mode=sale.emission_mode,
            document_number=sale.document_number,
            emitted_at=sale.created_at,
        )
        return self.sign(unsigned)
