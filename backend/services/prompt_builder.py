"""
Prompt Builder - system instruction and refinement prompts for script generation
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .static_context import StaticContext

ROLE_SECTION = """You are an expert Google Apps Script developer with years of experience creating \
automated workflows for Google Sheets, Docs, Gmail, Calendar, Drive and other Google products. \
Your task is to write a well-commented, ready-to-use Apps Script that precisely fulfills the user's request.

Format your response with:
1. First, provide the complete code enclosed in a single code block with ```js syntax
2. Then, provide a brief explanation of how the script works and any steps for deployment or usage"""

FORMAT_SECTION = """Rules for the code:
- Put everything in a single .gs file. Do not split the script across files.
- Never abbreviate: no "..." placeholders, no "rest of the code stays the same". Write every function in full.
- Apps Script entry points (triggers, menu handlers, doGet/doPost) must not be declared async. \
If you need async/await, put it in an inner async function and call it from a normal outer function.
- Start the file with comments listing the OAuth scopes the script needs, one per line, \
for example: // @scope https://www.googleapis.com/auth/spreadsheets
- If the script needs a UI, build the HTML inline with HtmlService.createHtmlOutput(); \
do not reference separate .html files."""

HELPER_SECTION = """A helper library named GeminiHelper will be appended to your code automatically. \
Use it whenever the script needs to call Gemini. Do not copy or redefine it, just call it as documented below.

GeminiHelper reference:
{helper_docs}"""

SAMPLE_SECTION = """Here are examples of working Apps Script projects. Follow their structure and conventions:

{sample_code}"""


def build_system_prompt(
    include_helper: bool,
    include_sample_code: bool,
    context: "StaticContext | None" = None,
) -> str:
    """Build the system instruction sent alongside the user's request.

    Optional sections are only added when requested and when the matching
    static resource is available, so the output depends only on the flags
    and the context contents.
    """
    sections = [ROLE_SECTION, FORMAT_SECTION]

    if include_helper and context is not None and context.helper_docs:
        sections.append(HELPER_SECTION.format(helper_docs=context.helper_docs.strip()))

    if include_sample_code and context is not None and context.sample_code:
        sections.append(SAMPLE_SECTION.format(sample_code=context.sample_code.strip()))

    sections.append("Make sure your code is complete, production-ready, and addresses all key aspects of the request.")
    return "\n\n".join(sections)


def build_refinement_prompt(original_prompt: str, refinement: str) -> str:
    """User prompt for a refinement turn"""
    return (
        f"Original request: {original_prompt}\n\n"
        f"Refinement needed: {refinement}\n\n"
        "Please generate an improved script that addresses the refinement."
    )


IDEAS_PROMPT = """Generate 5 specific, practical ideas for Google Apps Scripts that would be useful for business professionals.
Each idea should have both a short title (5-7 words) and a detailed description (1-2 sentences).
The ideas should focus on common spreadsheet, document, or email workflows that can be automated with Apps Script.

Format your response as a JSON array with this exact structure:
[
  {
    "short": "Short title for idea 1",
    "long": "Detailed description of the first idea that clearly explains what the script would do"
  },
  ...and so on for all 5 ideas
]

Return only valid JSON with no additional text."""

SCRIPT_NAME_PROMPT = """Suggest a file name for a Google Apps Script that does the following:

{description}

Reply with the name only: 2-4 words in CamelCase, letters and digits only, no extension, no quotes."""


def build_script_name_prompt(description: str) -> str:
    return SCRIPT_NAME_PROMPT.format(description=description.strip())
