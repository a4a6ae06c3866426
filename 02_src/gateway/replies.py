"""User-facing texts (Thai)."""

# Failure replies. Every one of them is matched by the error classifier,
# so none of them is ever cached as an answer.
TRANSIENT_FAILURE = "ขออภัย ระบบมีปัญหาชั่วคราว กรุณาลองใหม่อีกครั้งหรือติดต่อเจ้าหน้าที่"
RUN_START_FAILED = "ขออภัย ระบบมีปัญหา ไม่สามารถเริ่มประมวลผลคำถามได้ กรุณาลองใหม่อีกครั้ง"
NO_REPLY = "ขออภัย ระบบมีปัญหา ไม่สามารถตอบคำถามได้ในขณะนี้ กรุณาลองใหม่อีกครั้งหรือติดต่อเจ้าหน้าที่"

# Turn assembly
MULTI_MESSAGE_PREFIX = "สรุปคำถาม {count} ข้อความจากลูกค้า:"
TIME_PREFIX = "ขณะนี้เวลา {now}: "
IMAGE_INSTRUCTION = (
    "ลูกค้าส่งรูปภาพมา กรุณาวิเคราะห์รูปภาพและให้คำแนะนำเกี่ยวกับบริการทำความสะอาดที่เหมาะสม"
)
IMAGE_PLACEHOLDER = "ได้รับรูปภาพจากลูกค้า (ไม่สามารถแสดงได้)"

# Phrases that mark a reply as a failure
ERROR_KEYWORDS = (
    "Error ",
    "Failed to ",
    "not configured",
    "not set",
    "ขออภัย ระบบมีปัญหา",
    "เกิดข้อผิดพลาด",
    "ไม่สามารถ",
    "พบข้อผิดพลาด",
)
