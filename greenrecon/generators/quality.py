"""Synthetic quality scenario: receiving log plus supplier certificates."""

from __future__ import annotations

import random
from dataclasses import dataclass, field
from datetime import date

from greenrecon.generators.base import (
    ErrorPlan,
    PlantedError,
    Scenario,
    add_days,
    add_weeks,
    make_rng,
    sequence_id,
)
from greenrecon.models.quality import CertificateOfAnalysis, ReceivingEntry, TestResult


@dataclass(frozen=True)
class Supplier:
    id: str
    name: str
    type: str


@dataclass(frozen=True)
class Material:
    sku: str
    name: str
    category: str
    unit: str
    shelf_life_weeks: int | None


@dataclass(frozen=True)
class TestParameter:
    __test__ = False

    test: str
    unit: str
    min: float
    max: float
    typical: float


SUPPLIERS = [
    Supplier("SUP-001", "GreenGrow Solutions", "fertilizer"),
    Supplier("SUP-002", "AgroChem Canada", "chemicals"),
    Supplier("SUP-003", "NutriBlend Corp", "fertilizer"),
    Supplier("SUP-004", "BioControl Systems", "biocontrols"),
    Supplier("SUP-005", "PackTech Industries", "packaging"),
    Supplier("SUP-006", "Prairie Substrates", "growing_media"),
]

MATERIALS = [
    Material("FERT-NPK-20-20-20", "20-20-20 NPK Fertilizer", "fertilizer", "kg", 52),
    Material("FERT-CA-NITRATE", "Calcium Nitrate", "fertilizer", "kg", 52),
    Material("FERT-MG-SULFATE", "Magnesium Sulfate (Epsom)", "fertilizer", "kg", 104),
    Material("PEST-BT-KURSTAKI", "Bacillus thuringiensis (Bt)", "biocontrol", "L", 26),
    Material("PEST-NEEMOIL-1L", "Neem Oil Concentrate", "pesticide", "L", 52),
    Material("SANI-OXYL-5L", "Oxygenated Sanitizer", "sanitizer", "L", 26),
    Material("MEDIA-COCO-3CF", "Coco Coir Substrate (3 cu ft)", "growing_media", "bag", 156),
    Material("PACK-CLAM-454G", "Clamshell Container 454g", "packaging", "case", None),
    Material("PACK-LABEL-TOMATO", "Tomato Product Labels", "packaging", "roll", None),
]

COA_TEST_PARAMS: dict[str, list[TestParameter]] = {
    "fertilizer": [
        TestParameter("Nitrogen (N)", "%", 19.5, 20.5, 20.0),
        TestParameter("Phosphorus (P)", "%", 19.5, 20.5, 20.0),
        TestParameter("Potassium (K)", "%", 19.5, 20.5, 20.0),
        TestParameter("Heavy Metals (Pb)", "ppm", 0, 10, 2),
        TestParameter("Moisture Content", "%", 0, 2, 0.5),
    ],
    "biocontrol": [
        TestParameter("Viable Spore Count", "CFU/mL", 1e9, 5e9, 3e9),
        TestParameter("Contaminant Count", "CFU/mL", 0, 100, 10),
        TestParameter("pH", "", 6.0, 7.5, 6.8),
    ],
    "pesticide": [
        TestParameter("Active Ingredient Azadirachtin", "%", 0.9, 1.1, 1.0),
        TestParameter("Microbial Count", "CFU/mL", 0, 1000, 50),
    ],
    "sanitizer": [
        TestParameter("Active Oxygen", "%", 4.5, 5.5, 5.0),
        TestParameter("pH", "", 2.0, 4.0, 3.0),
        TestParameter("Heavy Metals", "ppm", 0, 5, 1),
    ],
    "growing_media": [
        TestParameter("pH", "", 5.5, 6.5, 6.0),
        TestParameter("EC (Electrical Conductivity)", "mS/cm", 0.3, 0.8, 0.5),
        TestParameter("Moisture Content", "%", 8, 12, 10),
        TestParameter("Pathogen Screen (E. coli)", "CFU/g", 0, 0, 0),
    ],
    "packaging": [],
}

RECEIVERS = ["J. Nguyen", "R. Patel", "A. Chen", "M. Santos"]

DEFAULT_PLAN: ErrorPlan = {1: "short_shelf_life", 3: "missing_coa", 5: "failed_test"}

SHORT_SHELF_LIFE_WEEKS = 8
NON_PERISHABLE_WEEKS = 52

CANADAGAP_SECTIONS = {
    "short_shelf_life": "4.5.1",
    "missing_coa": "4.3.2",
    "failed_test": "4.3.1",
}


@dataclass
class QualityScenario(Scenario):
    TABLES = (
        ("receiving_log", "receiving_log"),
        ("coa_records", "coa_records"),
    )

    receiving_log: list[ReceivingEntry] = field(default_factory=list)
    coa_records: list[CertificateOfAnalysis] = field(default_factory=list)
    planted_errors: list[PlantedError] = field(default_factory=list)


def lot_number(manufactured: date, supplier: Supplier, rng: random.Random) -> str:
    return f"{supplier.name[:3].upper()}{manufactured:%Y%m%d}-{rng.randint(100, 999)}"


def po_number(year: int, rng: random.Random) -> str:
    return f"BMG-PO-{year}-{rng.randint(1000, 9999)}"


def _compatible(material: Material, supplier: Supplier, error_type: str | None) -> bool:
    if material.category == "packaging" and supplier.type != "packaging":
        return False
    if error_type == "short_shelf_life":
        return material.shelf_life_weeks is not None
    if error_type == "failed_test":
        return bool(COA_TEST_PARAMS.get(material.category))
    return True


def _pick_material(supplier: Supplier, error_type: str | None, rng: random.Random) -> Material:
    candidates = [m for m in MATERIALS if _compatible(m, supplier, error_type)]
    return rng.choice(candidates)


def _format_result(value: float) -> float:
    if value > 1e6:
        return float(f"{value:.1e}")
    return round(value, 2)


def _out_of_spec(param: TestParameter) -> float:
    if 0 < param.max < 100:
        return param.max * 1.5
    if param.min > 0:
        return param.min * 0.5
    return param.max + 1


def _test_results(category: str, fail_first: bool, rng: random.Random) -> list[TestResult]:
    results = []
    for index, param in enumerate(COA_TEST_PARAMS.get(category, [])):
        if fail_first and index == 0:
            value = _out_of_spec(param)
        else:
            value = param.typical + (rng.random() - 0.5) * 0.1 * param.typical
            value = min(max(value, param.min), param.max)
        value = _format_result(value)
        results.append(
            TestResult(
                test=param.test,
                result=value,
                unit=param.unit,
                min_spec=param.min,
                max_spec=param.max,
                status="pass" if param.min <= value <= param.max else "fail",
            )
        )
    return results


def generate_quality_scenario(
    rng: random.Random | None = None,
    today: date | None = None,
    plan: ErrorPlan = DEFAULT_PLAN,
) -> QualityScenario:
    """Generate 6-8 received materials, planting compliance errors per ``plan``."""
    rng = make_rng(rng)
    today = today or date.today()
    base_date = add_days(today, -7)
    scenario = QualityScenario()

    for index in range(rng.randint(6, 8)):
        error_type = plan.get(index)
        supplier = rng.choice(SUPPLIERS)
        material = _pick_material(supplier, error_type, rng)

        received = add_days(base_date, index)
        manufactured = add_days(received, -30 - rng.randint(0, 59))
        lot = lot_number(manufactured, supplier, rng)
        receiving_id = sequence_id("RCV", today.year, index + 1)

        scenario.receiving_log.append(
            ReceivingEntry(
                receiving_id=receiving_id,
                received_date=received.isoformat(),
                supplier_id=supplier.id,
                supplier_name=supplier.name,
                sku=material.sku,
                material_name=material.name,
                lot_number=lot,
                quantity=rng.randint(10, 99),
                unit=material.unit,
                po_number=po_number(today.year, rng),
                receiver_name=rng.choice(RECEIVERS),
            )
        )

        coa = CertificateOfAnalysis(
            coa_id=f"COA-{receiving_id}",
            receiving_id=receiving_id,
            lot_number=lot,
            supplier_name=supplier.name,
            material_name=material.name,
            manufacture_date=manufactured.isoformat(),
            shelf_life_weeks=material.shelf_life_weeks,
        )
        described = f"{material.name} (Lot: {lot})"

        if error_type == "missing_coa":
            coa.expiry_date = (
                add_weeks(manufactured, material.shelf_life_weeks).isoformat()
                if material.shelf_life_weeks
                else "N/A"
            )
            scenario.coa_records.append(coa)
            scenario.planted_errors.append(
                PlantedError(
                    subject_id=receiving_id,
                    type="missing_coa",
                    severity="critical",
                    description=(
                        f"No COA received for {described} from {supplier.name}. "
                        "Material cannot be used until documentation is received."
                    ),
                    recommended_action=(
                        "Contact supplier immediately to request COA. Quarantine "
                        "material until documentation received."
                    ),
                    sku=material.sku,
                    regulation_section=CANADAGAP_SECTIONS["missing_coa"],
                )
            )
            continue

        if error_type == "short_shelf_life":
            expiry = add_weeks(received, SHORT_SHELF_LIFE_WEEKS)
        elif material.shelf_life_weeks:
            expiry = add_weeks(manufactured, material.shelf_life_weeks)
        else:
            expiry = add_weeks(received, NON_PERISHABLE_WEEKS)

        coa.expiry_date = expiry.isoformat()
        coa.test_results = _test_results(material.category, error_type == "failed_test", rng)
        coa.overall_status = "fail" if any(t.status == "fail" for t in coa.test_results) else "pass"
        coa.coa_received = True
        scenario.coa_records.append(coa)

        if error_type == "short_shelf_life":
            scenario.planted_errors.append(
                PlantedError(
                    subject_id=receiving_id,
                    type="short_shelf_life",
                    severity="high",
                    description=(
                        f"{described} expires in {SHORT_SHELF_LIFE_WEEKS} weeks. CanadaGAP "
                        "requires minimum 12 weeks remaining shelf life at time of receipt."
                    ),
                    recommended_action=(
                        "Request replacement or credit from supplier. Use material "
                        "first if production schedule allows."
                    ),
                    sku=material.sku,
                    regulation_section=CANADAGAP_SECTIONS["short_shelf_life"],
                )
            )
        elif error_type == "failed_test":
            failed = coa.test_results[0]
            scenario.planted_errors.append(
                PlantedError(
                    subject_id=receiving_id,
                    type="failed_test",
                    severity="critical",
                    description=(
                        f"{described} failed {failed.test} test. Result: {failed.result} "
                        f"{failed.unit} (Spec: {failed.min_spec}-{failed.max_spec})"
                    ),
                    recommended_action=(
                        "Reject material and return to supplier. Do not use in "
                        "production. Document rejection."
                    ),
                    sku=material.sku,
                    regulation_section=CANADAGAP_SECTIONS["failed_test"],
                )
            )

    return scenario
