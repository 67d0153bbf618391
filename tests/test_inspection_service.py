"""Quality inspections: templates, checkpoint copying and completion."""
from decimal import Decimal
import uuid

import pytest

from textile_erp.core.exceptions import ValidationError, InspectionNotFoundError, TemplateNotFoundError
from textile_erp.models import InspectionStatus
from textile_erp.services.inspection_service import InspectionService, resolve_completion_status


TEMPLATE = {
    "name": "Greige Fabric Inspection",
    "category": "FABRIC",
    "applicable_to": ["WOVEN"],
    "checkpoints": [
        {"name": "GSM within tolerance", "evaluation_type": "MEASUREMENT"},
        {"name": "No visible slubs", "evaluation_type": "PASS_FAIL"},
        {"name": "Hand feel", "evaluation_type": "rating", "is_required": False},
    ],
}


@pytest.mark.parametrize(
    "result, expected",
    [
        ("PASS", InspectionStatus.PASSED),
        ("pass", InspectionStatus.PASSED),
        ("FAIL", InspectionStatus.FAILED),
        ("REWORK", InspectionStatus.CONDITIONAL),
    ],
)
def test_resolve_completion_status(result, expected):
    assert resolve_completion_status(result) is expected


async def test_template_gets_code_and_checkpoints(db, company_id):
    template = await InspectionService(db).create_template(company_id, "qa-lead", TEMPLATE)

    assert template.template_id == "TPL001"
    assert template.passing_score == 70
    assert [cp.evaluation_type for cp in template.checkpoints] == ["MEASUREMENT", "PASS_FAIL", "RATING"]
    assert [cp.order_index for cp in template.checkpoints] == [0, 1, 2]


async def test_template_rejects_unknown_evaluation_type(db, company_id):
    data = dict(TEMPLATE, checkpoints=[{"name": "Colour", "evaluation_type": "GUESS"}])

    with pytest.raises(ValidationError):
        await InspectionService(db).create_template(company_id, "qa-lead", data)


async def test_list_templates_by_category(db, company_id):
    service = InspectionService(db)
    await service.create_template(company_id, "qa-lead", TEMPLATE)
    await service.create_template(company_id, "qa-lead", dict(TEMPLATE, name="Yarn Count", category="YARN"))

    assert [t.name for t in await service.list_templates(company_id, category="YARN")] == ["Yarn Count"]
    assert len(await service.list_templates(company_id)) == 2


async def test_inspection_copies_template_checkpoints(db, company_id):
    service = InspectionService(db)
    template = await service.create_template(company_id, "qa-lead", TEMPLATE)

    inspection = await service.create_inspection(company_id, {
        "inspection_type": "INCOMING_MATERIAL",
        "reference_type": "GRN",
        "reference_id": "GRN-0042",
        "template_id": template.id,
        "inspector_name": "R. Iyer",
    })

    assert inspection.inspection_number == "INS001"
    assert inspection.status == "PENDING"
    assert [cp.name for cp in inspection.checkpoints] == [cp.name for cp in template.checkpoints]
    assert all(cp.result is None for cp in inspection.checkpoints)


async def test_inspection_template_must_belong_to_company(db, company_id, other_company_id):
    service = InspectionService(db)
    template = await service.create_template(other_company_id, "qa-lead", TEMPLATE)

    with pytest.raises(TemplateNotFoundError):
        await service.create_inspection(company_id, {
            "inspection_type": "FINAL_PRODUCT",
            "reference_type": "BATCH",
            "reference_id": "B-7",
            "template_id": template.id,
        })


async def test_inspection_rejects_unknown_type(db, company_id):
    with pytest.raises(ValidationError):
        await InspectionService(db).create_inspection(company_id, {
            "inspection_type": "VIBES",
            "reference_type": "BATCH",
            "reference_id": "B-7",
        })


async def test_complete_inspection(db, company_id):
    service = InspectionService(db)
    inspection = await service.create_inspection(company_id, {
        "inspection_type": "FINAL_PRODUCT",
        "reference_type": "BATCH",
        "reference_id": "B-7",
    })

    completed = await service.complete_inspection(
        company_id, inspection.id, "FAIL", quality_score=Decimal("48.5"), notes="Shade variation"
    )

    assert completed.status == "FAILED"
    assert completed.overall_result == "FAIL"
    assert completed.quality_score == Decimal("48.5")
    assert completed.inspector_notes == "Shade variation"
    assert completed.completed_at is not None


async def test_checkpoint_result_starts_inspection(db, company_id):
    service = InspectionService(db)
    template = await service.create_template(company_id, "qa-lead", TEMPLATE)
    inspection = await service.create_inspection(company_id, {
        "inspection_type": "IN_PROCESS",
        "reference_type": "LOOM",
        "reference_id": "L-3",
        "template_id": template.id,
    })

    checkpoint = await service.update_checkpoint(
        company_id, inspection.id, inspection.checkpoints[0].id, "212 GSM", notes="Target 210"
    )

    assert checkpoint.result == "212 GSM"
    assert (await service.get_inspection(company_id, inspection.id)).status == "IN_PROGRESS"


async def test_inspection_numbers_and_filters(db, company_id, other_company_id):
    service = InspectionService(db)
    base = {"reference_type": "BATCH", "reference_id": "B-1"}

    first = await service.create_inspection(company_id, dict(base, inspection_type="RANDOM_CHECK"))
    second = await service.create_inspection(company_id, dict(base, inspection_type="FINAL_PRODUCT"))
    foreign = await service.create_inspection(other_company_id, dict(base, inspection_type="RANDOM_CHECK"))

    assert (first.inspection_number, second.inspection_number, foreign.inspection_number) == (
        "INS001", "INS002", "INS001"
    )
    assert [i.inspection_number for i in await service.list_inspections(company_id, inspection_type="FINAL_PRODUCT")] == ["INS002"]
    assert len(await service.list_inspections(company_id, status="PENDING")) == 2

    with pytest.raises(InspectionNotFoundError):
        await service.get_inspection(other_company_id, first.id)

    with pytest.raises(InspectionNotFoundError):
        await service.get_inspection(company_id, uuid.uuid4())
