"""Booking-workflow guidance the assistant consults to steer its own conversation."""

from dataclasses import dataclass
from typing import Any

# Asking for a person jumps straight to handoff
HANDOFF_KEYWORDS = ("เจ้าหน้าที่", "แอดมิน", "คุยกับคน", "human", "staff", "agent")


@dataclass(frozen=True)
class WorkflowStep:
    number: int
    name: str
    instruction: str


STEPS: tuple[WorkflowStep, ...] = (
    WorkflowStep(
        1,
        "greeting",
        "ทักทายลูกค้าอย่างสุภาพ แนะนำบริการกำจัดเชื้อโรคและซักขจัดคราบ "
        "แล้วถามว่าลูกค้าต้องการทำความสะอาดอะไร",
    ),
    WorkflowStep(
        2,
        "needs",
        "ถามประเภทสินค้า (ที่นอน/โซฟา/ม่าน/พรม) ขนาด และประเภทบริการที่ต้องการ "
        "ถ้าลูกค้าส่งรูปมา ให้ประเมินจากรูปก่อน",
    ),
    WorkflowStep(
        3,
        "quote",
        "เรียก get_ncs_pricing ด้วยข้อมูลที่ได้ แล้วแจ้งราคาให้ชัดเจน "
        "ห้ามเดาราคาเอง ถ้าข้อมูลไม่ครบให้ถามเพิ่ม",
    ),
    WorkflowStep(
        4,
        "schedule",
        "ถามเดือนที่ลูกค้าสะดวก แล้วเรียก get_available_slots_with_months "
        "เพื่อเสนอวันและเวลาที่ว่าง",
    ),
    WorkflowStep(
        5,
        "confirm",
        "สรุปรายการ ราคา วันเวลา และที่อยู่ ให้ลูกค้ายืนยัน "
        "พร้อมแจ้งเงื่อนไขมัดจำถ้ามี",
    ),
    WorkflowStep(
        6,
        "handoff",
        "แจ้งลูกค้าว่าจะส่งต่อให้เจ้าหน้าที่ติดต่อกลับ และสรุปข้อมูลที่ได้ให้เจ้าหน้าที่",
    ),
)

FIRST_STEP = STEPS[0].number
LAST_STEP = STEPS[-1].number


def _coerce_step(value: Any) -> int:
    try:
        step = int(value)
    except (TypeError, ValueError):
        return FIRST_STEP
    return min(max(step, FIRST_STEP), LAST_STEP)


def _wants_handoff(context: str) -> bool:
    lowered = context.lower()
    return any(keyword in lowered for keyword in HANDOFF_KEYWORDS)


def step_for(number: int) -> WorkflowStep:
    return STEPS[_coerce_step(number) - FIRST_STEP]


def get_workflow_guidance(args: dict[str, Any]) -> str:
    """Instruction text for the current step, given the conversation context."""
    step = step_for(_coerce_step(args.get("current_step")))
    context = str(args.get("context") or "").strip()

    text = f"ขั้นตอนที่ {step.number} ({step.name}): {step.instruction}"
    if context:
        text += f"\nบริบทล่าสุด: {context}"
    if _wants_handoff(context) and step.number != LAST_STEP:
        text += f"\nลูกค้าต้องการคุยกับเจ้าหน้าที่ ให้ข้ามไปขั้นตอนที่ {LAST_STEP}"
    return text


def get_next_workflow_step(args: dict[str, Any]) -> str:
    """Number and instruction of the step that follows the current one."""
    current = _coerce_step(args.get("current_step"))
    context = str(args.get("context") or "")

    if _wants_handoff(context):
        next_number = LAST_STEP
    else:
        next_number = min(current + 1, LAST_STEP)

    step = step_for(next_number)
    return f"next_step={step.number} ({step.name}): {step.instruction}"
