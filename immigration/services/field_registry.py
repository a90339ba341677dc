"""
Static field registries.

FIELD_REGISTRY
    Per-entity list of attributes that admins may reference when building
    legal-framework info requirements and document-type field mappings.

FILLABLE_FIELDS
    Individual-process attributes that a CaseStatus may declare editable
    ("fillable") while a process sits in that status.  This is a closed
    vocabulary: CaseStatus.fillable_fields may only name entries listed here.

Both are immutable and compiled into the application.
"""

from dataclasses import asdict, dataclass
from types import MappingProxyType

ENTITY_TYPES = ("person", "individual_process", "passport", "company")
REGISTRY_FIELD_TYPES = ("text", "date", "number", "select", "city", "country")
FILLABLE_FIELD_TYPES = ("string", "date", "datetime", "reference")


@dataclass(frozen=True)
class FieldRegistryEntry:
    field_path: str
    label: str
    label_en: str
    field_type: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FieldMetadata:
    field_name: str
    label_key: str
    field_type: str
    reference_table: str | None = None

    def to_dict(self) -> dict:
        return asdict(self)


def _e(field_path, label, label_en, field_type="text"):
    return FieldRegistryEntry(field_path, label, label_en, field_type)


# ═══════════════════════════════════════════════════════════════════════════
#  FIELD REGISTRY
# ═══════════════════════════════════════════════════════════════════════════

ENTITY_TYPE_LABELS = MappingProxyType({
    "person": ("Pessoa", "Person"),
    "individual_process": ("Processo Individual", "Individual Process"),
    "passport": ("Passaporte", "Passport"),
    "company": ("Empresa", "Company"),
})

FIELD_REGISTRY = MappingProxyType({
    "person": (
        _e("given_names", "Nome(s)", "Given name(s)"),
        _e("middle_name", "Nome do meio", "Middle name"),
        _e("surname", "Sobrenome", "Surname"),
        _e("email", "E-mail", "Email"),
        _e("cpf", "CPF", "CPF"),
        _e("birth_date", "Data de nascimento", "Date of birth", "date"),
        _e("birth_city_id", "Cidade de nascimento", "City of birth", "city"),
        _e("nationality_id", "Nacionalidade", "Nationality", "country"),
        _e("marital_status", "Estado civil", "Marital status", "select"),
        _e("profession", "Profissão", "Profession"),
        _e("cargo", "Cargo", "Position"),
        _e("current_city_id", "Cidade de residência", "City of residence", "city"),
        _e("residence_since", "Desde quando reside", "Residing since", "date"),
        _e("mother_name", "Nome da mãe", "Mother's name"),
        _e("father_name", "Nome do pai", "Father's name"),
        _e("phone_number", "Telefone", "Phone number"),
        _e("address", "Endereço", "Address"),
    ),
    "individual_process": (
        _e("funcao", "Função", "Function / Duty"),
        _e("monthly_amount_to_receive", "Salário mensal (BRL)", "Monthly salary (BRL)", "number"),
        _e("first_entry_date", "Data do 1º ingresso no Brasil", "Date of 1st entry in Brazil", "date"),
        _e("qualification", "Qualificação", "Qualification", "select"),
        _e("professional_experience_since", "Experiência profissional desde",
           "Professional experience since", "date"),
    ),
    "passport": (
        _e("passport_number", "Número do passaporte", "Passport number"),
        _e("issue_date", "Data de expedição", "Issue date", "date"),
        _e("expiry_date", "Válido até", "Valid until", "date"),
        _e("issuing_country_id", "País emissor", "Issuing country", "country"),
    ),
    "company": (
        _e("tax_id", "CNPJ", "Tax ID (CNPJ)"),
        _e("name", "Razão social", "Company name"),
        _e("email", "E-mail da empresa", "Company email"),
        _e("phone_number", "Telefone da empresa", "Company phone"),
    ),
})

RESPONSIBLE_PARTY_OPTIONS = (
    {"value": "client", "label": "Cliente", "label_en": "Client"},
    {"value": "admin", "label": "Admin", "label_en": "Admin"},
    {"value": "company", "label": "Empresa", "label_en": "Company"},
)


def get_field_entry(entity_type: str, field_path: str) -> FieldRegistryEntry | None:
    for entry in FIELD_REGISTRY.get(entity_type, ()):
        if entry.field_path == field_path:
            return entry
    return None


def entity_type_options() -> list[dict]:
    return [
        {"value": key, "label": label, "label_en": label_en}
        for key, (label, label_en) in ENTITY_TYPE_LABELS.items()
    ]


# ═══════════════════════════════════════════════════════════════════════════
#  FILLABLE FIELDS
# ═══════════════════════════════════════════════════════════════════════════

def _f(field_name, field_type, reference_table=None):
    return FieldMetadata(field_name, f"individual_processes.fields.{field_name}",
                         field_type, reference_table)


FILLABLE_FIELDS = (
    _f("passport_id", "reference", "passports"),
    _f("person_id", "reference", "people"),
    _f("process_type_id", "reference", "process_types"),
    _f("legal_framework_id", "reference", "legal_frameworks"),
    _f("cbo_id", "reference", "cbo_codes"),
    _f("mre_office_number", "string"),
    _f("dou_number", "string"),
    _f("dou_section", "string"),
    _f("dou_page", "string"),
    _f("dou_date", "date"),
    _f("protocol_number", "string"),
    _f("rnm_number", "string"),
    _f("rnm_deadline", "date"),
    _f("appointment_date_time", "datetime"),
    _f("deadline_date", "date"),
)

FILLABLE_FIELD_NAMES = frozenset(f.field_name for f in FILLABLE_FIELDS)

_FILLABLE_BY_NAME = MappingProxyType({f.field_name: f for f in FILLABLE_FIELDS})


def get_fillable_field(field_name: str) -> FieldMetadata | None:
    return _FILLABLE_BY_NAME.get(field_name)


def validate_field_names(field_names) -> bool:
    """True when every name is a known fillable field."""
    return all(name in FILLABLE_FIELD_NAMES for name in field_names)


def invalid_field_names(field_names) -> list[str]:
    return [name for name in field_names if name not in FILLABLE_FIELD_NAMES]


def get_fields_metadata(field_names) -> list[FieldMetadata]:
    """Metadata for the known names, in the given order; unknown names are dropped."""
    return [_FILLABLE_BY_NAME[n] for n in field_names if n in _FILLABLE_BY_NAME]
