"""Certificate slot catalog.

The order of ``CERTIFICATE_SLOTS`` is the canonical page order of every dossier. Changing it
(or bumping ``CATALOG_VERSION``) only affects dossiers assembled afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from certigest.formatting import cnpj_digits


CATALOG_VERSION = 1


class SlotCategory(str, Enum):
    FEDERAL = "Federal"
    ESTADUAL = "Estadual"
    MUNICIPAL = "Municipal"
    TRABALHISTA = "Trabalhista"
    JUDICIAL = "Judicial"
    OUTROS = "Outros"


class CopyField(str, Enum):
    """Which entity value the operator pastes into the issuing portal."""

    CNPJ = "cnpj"
    CNPJ_BASE = "cnpj_base"
    LEGAL_NAME = "legal_name"


@dataclass(frozen=True)
class AcquisitionHint:
    url: str
    copy_field: CopyField = CopyField.CNPJ
    secondary_copy_field: CopyField | None = None
    instructions: str | None = None


@dataclass(frozen=True)
class SlotDefinition:
    id: str
    name: str
    category: SlotCategory
    acquisition_hint: AcquisitionHint


def resolve_copy_value(field: CopyField, *, legal_name: str, cnpj: str) -> str:
    digits = cnpj_digits(cnpj)
    if field is CopyField.CNPJ_BASE:
        return digits[:8]
    if field is CopyField.LEGAL_NAME:
        return legal_name.strip()
    return digits


def describe_acquisition(slot: SlotDefinition, *, legal_name: str, cnpj: str) -> dict[str, object]:
    hint = slot.acquisition_hint
    secondary: dict[str, str] | None = None
    if hint.secondary_copy_field is not None:
        secondary = {
            "field": hint.secondary_copy_field.value,
            "value": resolve_copy_value(hint.secondary_copy_field, legal_name=legal_name, cnpj=cnpj),
        }
    return {
        "slot_id": slot.id,
        "url": hint.url,
        "copy": {
            "field": hint.copy_field.value,
            "value": resolve_copy_value(hint.copy_field, legal_name=legal_name, cnpj=cnpj),
        },
        "secondary_copy": secondary,
        "instructions": hint.instructions,
    }


CERTIFICATE_SLOTS: tuple[SlotDefinition, ...] = (
    SlotDefinition(
        id="situacao-cadastral-cnpj",
        name="Situação Cadastral CNPJ",
        category=SlotCategory.FEDERAL,
        acquisition_hint=AcquisitionHint(
            url="https://solucoes.receita.fazenda.gov.br/Servicos/cnpjreva/cnpjreva_solicitacao.asp",
        ),
    ),
    SlotDefinition(
        id="crf-fgts",
        name="CRF do FGTS",
        category=SlotCategory.FEDERAL,
        acquisition_hint=AcquisitionHint(
            url="https://consulta-crf.caixa.gov.br/consultacrf/pages/consultaEmpregador.jsf",
        ),
    ),
    SlotDefinition(
        id="cnd-estadual-sp",
        name="CND Estadual SP (ICMS/IPVA)",
        category=SlotCategory.ESTADUAL,
        acquisition_hint=AcquisitionHint(
            url="https://www10.fazenda.sp.gov.br/CertidaoNegativaDeb/Pages/EmissaoCertidaoNegativa.aspx",
        ),
    ),
    SlotDefinition(
        id="certidao-conjunta-federal",
        name="Certidão Conjunta Federal",
        category=SlotCategory.FEDERAL,
        acquisition_hint=AcquisitionHint(
            url="https://servicos.receitafederal.gov.br/servico/certidoes/#/home/cnpj",
        ),
    ),
    SlotDefinition(
        id="cndt-trabalhista",
        name="CNDT (Trabalhista)",
        category=SlotCategory.TRABALHISTA,
        acquisition_hint=AcquisitionHint(url="https://cndt-certidao.tst.jus.br/inicio.faces"),
    ),
    SlotDefinition(
        id="cadin-estadual-sp",
        name="CADIN Estadual SP",
        category=SlotCategory.ESTADUAL,
        acquisition_hint=AcquisitionHint(
            url="https://www.fazenda.sp.gov.br/cadin_estadual/pages/publ/cadin.aspx",
        ),
    ),
    SlotDefinition(
        id="improbidade-administrativa",
        name="Improbidade Administrativa (CNJ)",
        category=SlotCategory.JUDICIAL,
        acquisition_hint=AcquisitionHint(
            url="https://www.cnj.jus.br/improbidade_adm/consultar_requerido.php",
        ),
    ),
    SlotDefinition(
        id="divida-ativa-estadual-sp",
        name="Dívida Ativa Estadual SP",
        category=SlotCategory.ESTADUAL,
        acquisition_hint=AcquisitionHint(
            url="https://www.dividaativa.pge.sp.gov.br/sc/pages/crda/emitirCrda.jsf",
            copy_field=CopyField.CNPJ_BASE,
            instructions="O portal pede apenas o CNPJ base (8 dígitos).",
        ),
    ),
    SlotDefinition(
        id="cadin-municipal-sp",
        name="CADIN Municipal SP",
        category=SlotCategory.MUNICIPAL,
        acquisition_hint=AcquisitionHint(url="https://www3.prefeitura.sp.gov.br/cadin/Pesq_Deb.aspx"),
    ),
    SlotDefinition(
        id="falencia-concordata-tjsp",
        name="Certidão de Falência/Concordata (TJSP)",
        category=SlotCategory.JUDICIAL,
        acquisition_hint=AcquisitionHint(
            url="https://esaj.tjsp.jus.br/sco/abrirCadastro.do",
            copy_field=CopyField.LEGAL_NAME,
            secondary_copy_field=CopyField.CNPJ,
            instructions='Selecione "Jurídica" e o modelo de Falências.',
        ),
    ),
    SlotDefinition(
        id="cadesp",
        name="CADESP (Situação Cadastral)",
        category=SlotCategory.ESTADUAL,
        acquisition_hint=AcquisitionHint(
            url=(
                "https://www.cadesp.fazenda.sp.gov.br/(S(z4l4j03rf1q4tpsgyous2i5g))"
                "/Pages/Cadastro/Consultas/ConsultaPublica/ConsultaPublica.aspx"
            ),
        ),
    ),
    SlotDefinition(
        id="tributos-mobiliarios-duc",
        name="Certidão de Tributos Mobiliários (DUC)",
        category=SlotCategory.MUNICIPAL,
        acquisition_hint=AcquisitionHint(
            url="https://duc.prefeitura.sp.gov.br/certidoes/forms_anonimo/frmConsultaEmissaoCertificado.aspx",
        ),
    ),
    SlotDefinition(
        id="ficha-dados-ccm",
        name="Ficha de Dados Cadastrais (CCM)",
        category=SlotCategory.MUNICIPAL,
        acquisition_hint=AcquisitionHint(url="https://ccm.prefeitura.sp.gov.br/login/contribuinte?tipo=F"),
    ),
)

_SLOTS_BY_ID: dict[str, SlotDefinition] = {slot.id: slot for slot in CERTIFICATE_SLOTS}
if len(_SLOTS_BY_ID) != len(CERTIFICATE_SLOTS):
    raise RuntimeError("Certificate slot ids must be unique.")


def get_slot(slot_id: str) -> SlotDefinition | None:
    return _SLOTS_BY_ID.get(slot_id)


def serialize_slot(slot: SlotDefinition, *, position: int) -> dict[str, object]:
    return {
        "id": slot.id,
        "position": position,
        "name": slot.name,
        "category": slot.category.value,
        "url": slot.acquisition_hint.url,
        "copy_field": slot.acquisition_hint.copy_field.value,
    }


def serialize_catalog() -> dict[str, object]:
    return {
        "version": CATALOG_VERSION,
        "slots": [serialize_slot(slot, position=index) for index, slot in enumerate(CERTIFICATE_SLOTS, start=1)],
    }
