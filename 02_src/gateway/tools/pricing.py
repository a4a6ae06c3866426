"""Price lookup for the cleaning services, driven by a JSON catalogue.

The catalogue (``03_data/pricing_config.json``) holds services, items with
their sizes, customer types and packages. Each entry lists aliases in Thai
and English; lookups match an alias case-insensitively.

Size prices live at ``items[item].sizes[size].pricing[service][customer][package]``.
Package prices live at ``packages[package][service][quantity]``.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ..logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CUSTOMER = "new"
DEFAULT_PACKAGE = "regular"
GENERIC_SERVICE_NAME = "ทำความสะอาด"

PRICING_UNAVAILABLE = "ระบบราคายังไม่พร้อมใช้งาน กรุณาลองใหม่อีกครั้ง"


def format_number(n: int) -> str:
    """12000 -> '12,000'."""
    return f"{n:,}"


def _matches(value: str, aliases: list[str]) -> bool:
    value = value.strip().lower()
    return any(alias.lower() == value for alias in aliases)


def _find_key(value: str | None, entries: dict[str, dict]) -> str:
    if not value:
        return ""
    for key, entry in entries.items():
        if key == value.strip().lower() or _matches(value, entry.get("aliases", [])):
            return key
    return ""


@dataclass
class PricingRequest:
    """Normalized arguments of the pricing tool."""

    service_type: str = ""
    item_type: str = ""
    size: str = ""
    customer_type: str = DEFAULT_CUSTOMER
    package_type: str = DEFAULT_PACKAGE
    quantity: int = 1

    @classmethod
    def from_args(cls, args: dict[str, Any]) -> "PricingRequest":
        """Apply the tool's defaults to raw arguments."""
        try:
            quantity = int(args.get("quantity") or 1)
        except (TypeError, ValueError, OverflowError):
            quantity = 1
        return cls(
            service_type=str(args.get("service_type") or ""),
            item_type=str(args.get("item_type") or ""),
            size=str(args.get("size") or ""),
            customer_type=str(args.get("customer_type") or DEFAULT_CUSTOMER),
            package_type=str(args.get("package_type") or DEFAULT_PACKAGE),
            quantity=quantity if quantity > 0 else 1,
        )


@dataclass
class PricingCatalog:
    services: dict[str, dict] = field(default_factory=dict)
    items: dict[str, dict] = field(default_factory=dict)
    packages: dict[str, dict] = field(default_factory=dict)
    customer_types: dict[str, dict] = field(default_factory=dict)

    @classmethod
    def load(cls, path: str | Path) -> "PricingCatalog":
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        catalog = cls.from_dict(data)
        logger.info(f"Pricing configuration loaded from {path}")
        return catalog

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PricingCatalog":
        return cls(
            services=data.get("services", {}),
            items=data.get("items", {}),
            packages=data.get("packages", {}),
            customer_types=data.get("customer_types", {}),
        )

    def lookup(self, request: PricingRequest) -> str:
        """Formatted price text for a request."""
        logger.info(
            "Pricing lookup",
            extra={"context": {
                "service_type": request.service_type,
                "item_type": request.item_type,
                "size": request.size,
                "customer_type": request.customer_type,
                "package_type": request.package_type,
                "quantity": request.quantity,
            }},
        )

        service_key = _find_key(request.service_type, self.services)
        item_key = _find_key(request.item_type, self.items)
        customer_key = _find_key(request.customer_type, self.customer_types) or DEFAULT_CUSTOMER
        package_key = _find_key(request.package_type, self.packages) or DEFAULT_PACKAGE

        if package_key != DEFAULT_PACKAGE:
            return self._package_price(service_key, package_key, request.quantity)

        if not service_key or not item_key:
            return self._fallback(request)

        return self._item_price(service_key, item_key, request.size, customer_key)

    def _package_price(self, service_key: str, package_key: str, quantity: int) -> str:
        package = self.packages[package_key]
        service_name = (
            self.services.get(service_key, {}).get("name", "")
            if service_key
            else GENERIC_SERVICE_NAME
        )

        price = (package.get(service_key) or {}).get(str(quantity)) if service_key else None
        if price:
            deposit = ""
            if price.get("deposit_min"):
                deposit = f" มัดจำขั้นต่ำ {format_number(price['deposit_min'])} บาท"
            return (
                f"{package['name']} บริการ{service_name} {quantity} ใบ: "
                f"ราคาเต็ม {format_number(price['full_price'])} บาท "
                f"ส่วนลด {format_number(price['discount'])} บาท "
                f"ราคาพิเศษ {format_number(price['sale_price'])} บาท "
                f"(เฉลี่ยใบละ {format_number(price['per_item'])} บาท){deposit}"
            )

        return f"ไม่พบข้อมูลราคา{package['name']} {quantity} ใบ สำหรับบริการ{service_name}"

    def _item_price(self, service_key: str, item_key: str, size: str, customer_key: str) -> str:
        item = self.items[item_key]
        service = self.services[service_key]
        customer = self.customer_types.get(customer_key, {})
        sizes = item.get("sizes", {})

        size_key = _find_key(size, sizes)
        if not size_key:
            return self._size_list(service_key, item_key, customer_key)

        size_entry = sizes[size_key]
        price = (
            size_entry.get("pricing", {})
            .get(service_key, {})
            .get(customer_key, {})
            .get(DEFAULT_PACKAGE)
        )
        if not price:
            return (
                f"ไม่พบข้อมูลราคา{item['name']} {size_entry['name']} "
                f"{service['name']} สำหรับ{customer.get('name', '')}"
            )

        header = f"{item['name']} {size_entry['name']} บริการ{service['name']}"
        if customer.get("name"):
            header += f" สำหรับ{customer['name']}"
        return f"{header}: {', '.join(self._price_parts(price, full_label='ราคาเต็ม '))}"

    def _size_list(self, service_key: str, item_key: str, customer_key: str) -> str:
        item = self.items[item_key]
        service = self.services[service_key]
        customer = self.customer_types.get(customer_key, {})

        header = f"บริการทำความสะอาด{item['name']} {service['name']}"
        if customer_key != DEFAULT_CUSTOMER and customer.get("name"):
            header += f" สำหรับ{customer['name']}"

        lines = []
        for size_entry in item.get("sizes", {}).values():
            price = (
                size_entry.get("pricing", {})
                .get(service_key, {})
                .get(customer_key, {})
                .get(DEFAULT_PACKAGE)
            )
            if price:
                parts = ", ".join(self._price_parts(price))
                lines.append(f"• {item['name']} {size_entry['name']}: {parts}")

        if not lines:
            return f"ไม่พบข้อมูลราคา{item['name']} สำหรับบริการ{service['name']}"

        return (
            f"{header}:\n" + "\n".join(lines)
            + f"\n\nกรุณาระบุขนาด{item['name']}เพื่อข้อมูลราคาที่แม่นยำ"
        )

    @staticmethod
    def _price_parts(price: dict[str, int], full_label: str = "") -> list[str]:
        parts = []
        if price.get("full_price"):
            parts.append(f"{full_label}{format_number(price['full_price'])} บาท")
        if price.get("discount_35"):
            parts.append(f"ลด 35% = {format_number(price['discount_35'])} บาท")
        if price.get("discount_50"):
            parts.append(f"ลด 50% = {format_number(price['discount_50'])} บาท")
        return parts

    @staticmethod
    def _fallback(request: PricingRequest) -> str:
        return (
            f"ขออภัย ไม่พบข้อมูลราคาสำหรับ บริการ: '{request.service_type}' "
            f"สินค้า: '{request.item_type}' ขนาด: '{request.size}'\n\n"
            "กรุณาติดต่อเจ้าหน้าที่เพื่อสอบถามราคาเพิ่มเติม หรือระบุรายละเอียดให้ชัดเจนมากขึ้น เช่น:\n"
            "• ประเภทบริการ (กำจัดเชื้อโรค หรือ ซักขจัดคราบ)\n"
            "• ประเภทสินค้า (ที่นอน/โซฟา/ม่าน/พรม)\n"
            "• ขนาด (3ฟุต, 6ฟุต, 2ที่นั่ง, ฯลฯ)\n"
            "• ประเภทลูกค้า (ลูกค้าใหม่ หรือ สมาชิก)"
        )


class PricingTool:
    """The ``get_ncs_pricing`` tool handler."""

    name = "get_ncs_pricing"

    def __init__(self, catalog: PricingCatalog | None):
        self._catalog = catalog

    @classmethod
    def from_path(cls, path: str | Path) -> "PricingTool":
        """Load the catalogue; a missing or broken file leaves the tool unavailable."""
        try:
            return cls(PricingCatalog.load(path))
        except (OSError, ValueError) as e:
            logger.error(f"Failed to load pricing configuration from {path}: {e}")
            return cls(None)

    def __call__(self, args: dict[str, Any]) -> str:
        if self._catalog is None:
            return PRICING_UNAVAILABLE
        result = self._catalog.lookup(PricingRequest.from_args(args))
        logger.info(f"Pricing function result: {result[:100]}")
        return result
