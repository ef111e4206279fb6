from __future__ import annotations

INITIAL_IMAGE_PROMPT = (
    "generate an image of this description. make sure that the text on the image is clear, "
    "and that you follow the prompt exactly. you are generating this image for a tech product visualization."
)

IMAGE_EVALUATION_PROMPT = (
    "Evaluate this image for quality issues such as blurry text, distortions, or other problems. "
    "Be extremely critical. You should also evaluate it if it's appealing as a tech product visualization. "
    "Make sure all of the text is able to be seen and in frame. If the image looks good and has no major issues, "
    "say '{token}'. If the image needs to be fixed, be very specific about what needs to be fixed. "
    "If the image needs to be fixed don't include the word {token} in your response. "
    "Talk about what needs to be fixed, where, and how. Output the suggested text without any ** characters."
)

IMAGE_IMPROVEMENT_PROMPT = (
    "{original_prompt}. Improvements needed: {feedback}. "
    "Keep everything in the image the same except for what is specified to be changed."
)

PERSONA_IMAGE_PROMPT = (
    "Optimize this image for {name} audience persona.\n"
    "Keep the general concept but adjust colors, style, and presentation to appeal specifically to this persona.\n"
    "Original prompt: {original_prompt}\n"
    "Persona bio: {bio}"
)

AD_ANALYSIS_PROMPT = (
    "You are an expert marketer. Analyze this advertisement image and return a JSON object with these keys:\n"
    "- overall_blurb: a concise summary of what makes this ad great overall.\n"
    "- elements: one entry per text element in the ad, each with\n"
    "  - text: the text from the ad element\n"
    "  - type: type of copy (e.g. Headline, Subheadline, Body, CTA, Guarantee)\n"
    "  - rationale: a detailed explanation of what makes this element effective\n"
    "Be extremely detailed in your analysis, especially in the rationale explanations."
)

PERSONA_ANALYSIS_PROMPT = """Analyze how the following product resonates with this persona:

Persona Name: {name}
Persona Bio: {bio}
Product Description: {product_description}

1. Identify the 3 most compelling product benefits for this specific person

2. Explain why these benefits would resonate with them

3. Rank which product features would matter most to them

4. Suggest messaging angles that would address their specific pain points

5. Recommend the emotional triggers most likely to motivate a purchase

Be specific and use the actual language patterns identified in each persona."""

ELEMENT_REWRITE_PROMPT = """You are an expert marketer.
- Rewrite this ad text to better resonate with the persona, keeping the type and intent, but improving it based on the persona's needs tailoring it towards the new product description.
- Return only the improved text.
- You MUST keep the length of the text very similar to the original text.

Here is the ad element from an original ad:
Type: {type}
Text: "{text}"
Why it works: {rationale}

Product Description: {product_description}

Persona Analysis:
{analysis}
"""


def build_initial_prompt(prompt: str) -> str:
    return f"{INITIAL_IMAGE_PROMPT} {prompt}"


def build_evaluation_prompt(token: str) -> str:
    return IMAGE_EVALUATION_PROMPT.format(token=token)


def build_improvement_prompt(original_prompt: str, feedback: str) -> str:
    return IMAGE_IMPROVEMENT_PROMPT.format(original_prompt=original_prompt, feedback=feedback)
