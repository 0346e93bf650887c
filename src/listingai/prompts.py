"""Prompt assembly for listing copy and product images.

Every option is looked up in a fixed phrase table; unknown values fall back
to the table's default phrase. Nothing here touches the network.
"""

from typing import Dict, Optional

DEFAULT_KEY = "default"

TONE_PHRASES: Dict[str, str] = {
    "professional": "Professional and clear, emphasising product features and quality",
    "playful": "Lively and fun, approachable, using vivid language",
    "concise": "Concise and punchy, getting straight to the key points without filler",
    DEFAULT_KEY: "Professional and clear, emphasising product features and quality",
}

STYLE_PHRASES: Dict[str, str] = {
    "product-photography": "professional product photography, clean and sharp, highlighting the product's features for e-commerce",
    "lifestyle": "lifestyle scene showing the product in a real usage environment",
    "minimalist": "minimalist style with a simple clean backdrop that puts the product itself first",
    "artistic": "artistic presentation with a creative, distinctive viewpoint suited to design products",
    "technical": "technical style showing functions and engineering details, suited to electronics and machinery",
    DEFAULT_KEY: "professional product photography, clean and sharp, highlighting the product's features",
}

BACKGROUND_PHRASES: Dict[str, str] = {
    "white": "pure white background for professional product display",
    "transparent": "transparent background for easy editing later",
    "gradient": "soft gradient background that lifts perceived quality",
    "contextual": "simple contextual scene related to how the product is used",
    "studio": "professional studio backdrop with soft light and shadow",
    DEFAULT_KEY: "pure white background for professional product display",
}

DETAIL_PHRASES: Dict[str, str] = {
    "low": "basic detail, showing the overall look of the product",
    "medium": "medium detail, clearly showing the main features and functions",
    "high": "high detail, rendering materials, textures and fine features precisely",
    DEFAULT_KEY: "medium detail, clearly showing the main features and functions",
}

ASPECT_RATIO_PHRASES: Dict[str, str] = {
    "1:1": "square format (1:1 aspect ratio)",
    "square": "square format (1:1 aspect ratio)",
    "3:4": "portrait orientation (3:4 aspect ratio)",
    "portrait": "portrait orientation (3:4 aspect ratio)",
    "4:3": "landscape orientation (4:3 aspect ratio)",
    "landscape": "landscape orientation (4:3 aspect ratio)",
    "9:16": "tall vertical format (9:16 aspect ratio)",
    "16:9": "widescreen format (16:9 aspect ratio)",
    "widescreen": "widescreen format (16:9 aspect ratio)",
    DEFAULT_KEY: "square format (1:1 aspect ratio)",
}

PRESET_TEMPLATES: Dict[str, str] = {
    "product": "Professional product photography of {prompt}. Studio lighting, clean background, commercial quality, showing product details clearly. No text or watermarks.",
    "lifestyle": "Lifestyle photography of {prompt} in use in a natural setting. Soft natural lighting, shallow depth of field, showing the product in context. No text or people's faces.",
    "minimal": "Minimalist product image of {prompt}. Pure white background, elegant composition, simple and clean aesthetic. Professional e-commerce style with perfect lighting.",
    "creative": "Creative product visualization of {prompt}. Artistic composition, interesting perspective, visually striking, conceptual approach. Professional quality for marketing.",
}

IMAGE_QUALITY_REQUIREMENTS = [
    "The product sits at the centre of the frame",
    "Details are clearly visible",
    "Colours are accurate and vivid",
    "Lighting looks professional",
    "Suitable for an e-commerce listing",
    "No watermarks or text",
    "Product proportions look natural and realistic",
]

ATTRIBUTES_PROMPT = """Analyse this product image and extract the following information where it is visible:
1. Product category
2. Colour / colour scheme
3. Likely material
4. Style characteristics
5. Likely uses
6. Size (if it can be judged)
7. Brand (if visible)

Reply in JSON using exactly this shape:
{
  "category": "product category",
  "color": "main colour",
  "material": "likely material",
  "style": "style characteristics",
  "useCases": ["use 1", "use 2"],
  "size": "estimated size",
  "brand": "brand name",
  "otherFeatures": ["feature 1", "feature 2"]
}

If something cannot be determined from the image, write "unknown". Reply with the JSON only, no other text."""


def lookup(table: Dict[str, str], key: Optional[str]) -> str:
    if not key:
        return table[DEFAULT_KEY]
    return table.get(key.strip().lower(), table[DEFAULT_KEY])


def tone_phrase(tone: Optional[str]) -> str:
    return lookup(TONE_PHRASES, tone)


def draft_description_prompt(product_name: str = "") -> str:
    """Starter text offered in the prompt box before the user types."""
    draft = ""
    if product_name.strip():
        draft += f"Product name: {product_name.strip()}\n"
    draft += "Please write a short product description, under 200 characters.\n"
    draft += "Additional requirements:\n- "
    return draft


def description_prompt(
    user_prompt: str, product_name: str = "", tone: Optional[str] = None
) -> str:
    name = product_name.strip() or "this product"
    return (
        "You are a professional e-commerce copywriter. Using the information below, "
        f'write a product description for "{name}".\n'
        f"Tone: {tone_phrase(tone)}\n\n"
        "Information provided by the user:\n"
        f"{user_prompt.strip()}\n\n"
        "Requirements:\n"
        "1. At most 200 characters of engaging, focused copy suitable for an online store\n"
        "2. Avoid repeating words\n"
        "3. Cover features, advantages, use cases, materials/specs and how it feels to use\n"
        "4. Adjust wording and phrasing to the requested tone\n"
        "5. Well structured with clear paragraphs\n"
        "6. Return only the description text, no title or preamble"
    )


def image_prompt(
    description: str,
    style: Optional[str] = None,
    background: Optional[str] = None,
    aspect_ratio: Optional[str] = None,
    detail_level: Optional[str] = None,
) -> str:
    lines = [
        "As a professional product image generator, create a high-quality product image from the description below.",
        "",
        f"Product description: {description.strip()}",
        "",
        f"Image style: {lookup(STYLE_PHRASES, style)}",
        f"Aspect ratio: {lookup(ASPECT_RATIO_PHRASES, aspect_ratio)}",
        f"Detail level: {lookup(DETAIL_PHRASES, detail_level)}",
        f"Background: {lookup(BACKGROUND_PHRASES, background)}",
        "",
        "Follow these quality requirements:",
    ]
    lines.extend(f"- {requirement}" for requirement in IMAGE_QUALITY_REQUIREMENTS)
    lines.append("")
    lines.append("Generate the image and add a short caption describing it.")
    return "\n".join(lines)


def preset_prompt(preset: str, description: str) -> str:
    """Quick single-sentence prompt for a named preset, else the full image prompt."""
    template = PRESET_TEMPLATES.get(preset.strip().lower())
    if template is None:
        return image_prompt(description)
    return template.format(prompt=description.strip())


def image_description_prompt(
    product_name: str = "",
    tone: Optional[str] = None,
    max_length: int = 200,
    include_features: bool = True,
    include_materials: bool = True,
    include_use_cases: bool = True,
) -> str:
    prompt = "Write an engaging e-commerce product description for the product in this image."
    if product_name.strip():
        prompt += f"\nProduct name: {product_name.strip()}"
    prompt += f"\nTone: {tone_phrase(tone)}"
    prompt += f"\nLength limit: at most {max_length} characters"
    prompt += "\n\nPlease include:"
    if include_features:
        prompt += "\n- The main features and selling points"
    if include_materials:
        prompt += "\n- Material and texture (judged from the image)"
    if include_use_cases:
        prompt += "\n- Suitable scenarios or use cases"
    prompt += (
        "\n\nReturn only the description copy, without preamble, title or extra notes. "
        "Describe the product in a way that appeals to shoppers and highlights its value."
    )
    prompt += (
        "\nIf the image gives too little information you may infer reasonably, "
        "but avoid inventing details."
    )
    return prompt


def image_edit_prompt(instruction: str) -> str:
    return (
        "Analyse this product image and process it according to the following instruction:\n"
        f"{instruction.strip()}\n\n"
        "Please provide:\n"
        "1. A detailed description of the product\n"
        "2. The image adjusted according to the instruction\n\n"
        "For the description, focus on the product's features, advantages and use cases."
    )


def image_regenerate_prompt(instruction: str) -> str:
    return (
        "Using this product image as a reference, generate a new image that meets the following requirements:\n"
        f"{instruction.strip()}\n\n"
        "Generate the image directly, without additional explanatory text."
    )
