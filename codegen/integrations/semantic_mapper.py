"""Map a classified component onto a ShadCN UI target schema."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from codegen.integrations.component_classifier import DEFAULT_TAG


@dataclass(frozen=True)
class ShadcnSchema:
    shadcn_name: str
    import_path: str
    sub_components: Tuple[str, ...] = ()
    variants: Tuple[str, ...] = ()
    sizes: Tuple[str, ...] = ()


SHADCN_SCHEMAS: Dict[str, ShadcnSchema] = {
    "Button": ShadcnSchema(
        "Button", "@/components/ui/button",
        variants=("default", "destructive", "outline", "secondary", "ghost", "link"),
        sizes=("default", "sm", "lg", "icon"),
    ),
    "Card": ShadcnSchema(
        "Card", "@/components/ui/card",
        sub_components=("CardHeader", "CardTitle", "CardDescription", "CardContent", "CardFooter"),
    ),
    "Input": ShadcnSchema("Input", "@/components/ui/input", sub_components=("Label",)),
    "Dialog": ShadcnSchema(
        "Dialog", "@/components/ui/dialog",
        sub_components=("DialogTrigger", "DialogContent", "DialogHeader", "DialogTitle",
                        "DialogDescription", "DialogFooter"),
    ),
    "Alert": ShadcnSchema(
        "Alert", "@/components/ui/alert",
        sub_components=("AlertTitle", "AlertDescription"),
        variants=("default", "destructive"),
    ),
    "Badge": ShadcnSchema(
        "Badge", "@/components/ui/badge",
        variants=("default", "secondary", "destructive", "outline"),
    ),
    "Checkbox": ShadcnSchema("Checkbox", "@/components/ui/checkbox", sub_components=("Label",)),
    "RadioGroup": ShadcnSchema(
        "RadioGroup", "@/components/ui/radio-group", sub_components=("RadioGroupItem", "Label"),
    ),
    "Select": ShadcnSchema(
        "Select", "@/components/ui/select",
        sub_components=("SelectTrigger", "SelectValue", "SelectContent", "SelectItem"),
    ),
    "Switch": ShadcnSchema("Switch", "@/components/ui/switch", sub_components=("Label",)),
    "Slider": ShadcnSchema("Slider", "@/components/ui/slider"),
    "Tabs": ShadcnSchema(
        "Tabs", "@/components/ui/tabs", sub_components=("TabsList", "TabsTrigger", "TabsContent"),
    ),
    "Avatar": ShadcnSchema(
        "Avatar", "@/components/ui/avatar", sub_components=("AvatarImage", "AvatarFallback"),
    ),
}

# Plain element for types without a ShadCN counterpart
FALLBACK_SCHEMA = ShadcnSchema("div", "")


@dataclass
class MappingResult:
    component_type: str
    schema: ShadcnSchema
    confidence: float
    detected_variant: Optional[str] = None
    detected_size: Optional[str] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["schema"] = {
            "shadcn_name": self.schema.shadcn_name,
            "import_path": self.schema.import_path,
            "sub_components": list(self.schema.sub_components),
            "variants": list(self.schema.variants),
            "sizes": list(self.schema.sizes),
        }
        return data


def _detect_option(haystack: str, options: Tuple[str, ...]) -> Optional[str]:
    for option in options:
        if option != "default" and option in haystack:
            return option
    return None


def map_component_to_schema(parsed: Dict[str, Any], component_type: str) -> MappingResult:
    """Choose the ShadCN schema for *component_type* and pick a variant/size.

    Variant and size are read from the layer name and component properties
    (e.g. "Button/Secondary/Large" → variant "secondary", size "lg").
    """
    schema = SHADCN_SCHEMAS.get(component_type)
    warnings: List[str] = []

    if schema is None:
        label = component_type if component_type != DEFAULT_TAG else "unclassified component"
        warnings.append(f"No ShadCN schema for {label}; generating a plain element")
        return MappingResult(component_type, FALLBACK_SCHEMA, 0.3, warnings=warnings)

    properties = parsed.get("properties") or {}
    haystack = " ".join(
        [parsed.get("name", "")] + [f"{k} {v}" for k, v in properties.items()]
    ).lower()
    haystack = haystack.replace("large", "lg").replace("small", "sm")

    variant = _detect_option(haystack, schema.variants)
    size = _detect_option(haystack, schema.sizes)

    confidence = 0.9
    if schema.variants and variant is None:
        confidence -= 0.1
    if parsed.get("child_count", 0) == 0 and schema.sub_components:
        warnings.append(f"{schema.shadcn_name} usually has sub-components but the node has no children")
        confidence -= 0.2

    return MappingResult(
        component_type=component_type,
        schema=schema,
        confidence=round(confidence, 2),
        detected_variant=variant,
        detected_size=size,
        warnings=warnings,
    )
