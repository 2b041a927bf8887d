"""
Report template library.

Templates are keyed modality -> region -> finding name. Their HTML carries
`{{key}}` placeholders described by a list of fields; compiling a template
replaces every occurrence of each placeholder with the entered value or the
field default. Built-in templates can be extended or overridden by rows
from the backend templates collection.
"""
from typing import Any, Callable, Dict, List, Optional
import json
import logging

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class TemplateField(BaseModel):
    """A placeholder of a template."""
    key: str
    label: str
    type: str = "text"
    default: str = ""
    options: List[str] = Field(default_factory=list)


class ReportTemplate(BaseModel):
    """
    Report Template

    Fields:
    - id: Stable identifier (built-in slug or backend row id)
    - modality / region / name: Library keys
    - title: Short description shown in the sidebar
    - content: HTML fragment with {{key}} placeholders
    - fields: Placeholder descriptors
    """
    id: str = ""
    modality: str
    region: str
    name: str
    title: str = ""
    content: str = ""
    fields: List[TemplateField] = Field(default_factory=list)

    def placeholder(self, key: str) -> str:
        return "{{" + key + "}}"

    def compile(self, values: Optional[Dict[str, Optional[str]]] = None) -> str:
        """
        Substitute placeholders. Blank or missing values fall back to the
        field default.
        """
        values = values or {}
        content = self.content
        for field in self.fields:
            content = content.replace(self.placeholder(field.key), values.get(field.key) or field.default)
        return content

    def fill(self, ask: Callable[[TemplateField], Optional[str]]) -> str:
        """
        Compile, asking for each field in order.
        """
        return self.compile({field.key: ask(field) for field in self.fields})


BUILTIN_TEMPLATES: List[Dict[str, Any]] = [
    {
        "id": "us_abd_normal", "modality": "US", "region": "Abdomen", "name": "Normal", "title": "Normal Abdomen",
        "content": (
            "<p><b>Liver:</b> Normal size ({{liver_span_cm}} cm), smooth outline, homogeneous echotexture. "
            "No focal lesions. Intrahepatic bile ducts are not dilated.</p>"
            "<p><b>Gallbladder:</b> {{gallbladder_status}}. Wall thickness is normal.</p>"
            "<p><b>Pancreas:</b> Normal size and echotexture. No focal masses.</p>"
            "<p><b>Spleen:</b> Normal size, homogeneous parenchyma.</p>"
            "<p><b>Kidneys:</b> Bilateral normal size, shape, and position. No stones or hydronephrosis.</p>"
            "<p><b>Aorta/IVC:</b> Normal caliber.</p>"
            "<p><b>Free Fluid:</b> No ascites seen.</p>"
        ),
        "fields": [
            {"key": "liver_span_cm", "label": "Liver Span (cm)", "type": "number", "default": "14"},
            {"key": "gallbladder_status", "label": "Gallbladder", "type": "select",
             "options": ["Distended, thin-walled, no stones", "Contracted", "Surgically absent"],
             "default": "Distended, thin-walled, no stones"},
        ],
    },
    {
        "id": "us_abd_fatty", "modality": "US", "region": "Abdomen", "name": "Fatty Liver", "title": "Fatty Liver",
        "content": (
            "<p><b>Liver:</b> Increased echogenicity (Grade {{fatty_grade}}) causing mild attenuation of the "
            "sound beam. No focal lesions seen.</p>"
            "<p><b>Impression:</b> Findings consistent with fatty infiltration of the liver.</p>"
        ),
        "fields": [
            {"key": "fatty_grade", "label": "Grade", "type": "select", "options": ["I", "II", "III"], "default": "I"},
        ],
    },
    {
        "id": "ct_chest_normal", "modality": "CT", "region": "Chest", "name": "Normal", "title": "Normal Chest",
        "content": (
            "<p><b>Lungs:</b> Clear lung fields bilaterally. No focal nodules, masses, or consolidation.</p>"
            "<p><b>Pleura:</b> No pleural effusion or pneumothorax.</p>"
            "<p><b>Mediastinum:</b> Normal mediastinal contour. No adenopathy.</p>"
            "<p><b>Heart:</b> Normal size. No pericardial effusion.</p>"
            "<p><b>Bones:</b> No suspicious lytic or sclerotic lesions.</p>"
        ),
        "fields": [],
    },
    {
        "id": "ct_chest_pna", "modality": "CT", "region": "Chest", "name": "Pneumonia", "title": "Pneumonia",
        "content": (
            "<p><b>Lungs:</b> Patchy consolidation seen in the {{lobe}} lobe with air bronchograms.</p>"
            "<p><b>Impression:</b> Features suggestive of {{lobe}} lobe pneumonia.</p>"
        ),
        "fields": [
            {"key": "lobe", "label": "Affected Lobe", "type": "select",
             "options": ["RUL", "RML", "RLL", "LUL", "LLL"], "default": "RLL"},
        ],
    },
    {
        "id": "mri_brain_normal", "modality": "MRI", "region": "Brain", "name": "Normal", "title": "Normal Brain",
        "content": (
            "<p><b>Parenchyma:</b> Normal signal intensity of gray and white matter. No distinct focal lesions.</p>"
            "<p><b>Ventricles:</b> Normal size and configuration. No hydrocephalus.</p>"
            "<p><b>Midline:</b> No shift.</p>"
        ),
        "fields": [],
    },
    {
        "id": "mri_brain_stroke", "modality": "MRI", "region": "Brain", "name": "Stroke", "title": "Acute Stroke",
        "content": (
            "<p><b>Parenchyma:</b> Area of restricted diffusion (high DWI, low ADC) in the {{artery}} territory.</p>"
            "<p><b>Impression:</b> Acute ischemic infarction in the {{artery}} distribution.</p>"
        ),
        "fields": [
            {"key": "artery", "label": "Vessel Territory", "type": "text", "default": "MCA"},
        ],
    },
]


def template_from_row(row: Dict[str, Any]) -> Optional[ReportTemplate]:
    """
    Build a template from a backend row (fields stored JSON-encoded).
    Rows that do not describe a valid template are skipped.
    """
    data = dict(row)
    fields = data.get("fields")
    if isinstance(fields, str):
        try:
            data["fields"] = json.loads(fields) if fields else []
        except ValueError:
            logger.warning(f"Template {row.get('id')} has malformed fields, ignoring them")
            data["fields"] = []
    try:
        return ReportTemplate(**data)
    except ValidationError as e:
        logger.warning(f"Skipping invalid template row {row.get('id')}: {str(e)}")
        return None


class TemplateLibrary:
    """
    Templates indexed by modality -> region -> name.
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self._index: Dict[str, Dict[str, Dict[str, ReportTemplate]]] = {}
        for data in BUILTIN_TEMPLATES:
            self.add(ReportTemplate(**data))
        for row in rows or []:
            template = template_from_row(row)
            if template is not None:
                self.add(template)

    def add(self, template: ReportTemplate) -> None:
        """Add or replace (same modality, region and name) a template."""
        self._index.setdefault(template.modality, {}).setdefault(template.region, {})[template.name] = template

    def modalities(self) -> List[str]:
        return sorted(self._index)

    def for_study(self, modality: Optional[str], region: Optional[str]) -> List[ReportTemplate]:
        return list(self._index.get(modality or "", {}).get(region or "", {}).values())

    def get(self, modality: Optional[str], region: Optional[str], name: str) -> Optional[ReportTemplate]:
        return self._index.get(modality or "", {}).get(region or "", {}).get(name)
