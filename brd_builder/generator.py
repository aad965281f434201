import logging
from datetime import date

from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate
from langchain_groq import ChatGroq
from langchain_openai import AzureChatOpenAI, ChatOpenAI

from .errors import GenerationError, InputEmptyError
from .extractors import truncate_for_prompt

logger = logging.getLogger(__name__)

PROVIDERS = ("OpenAI", "Groq", "AzureOpenAI")
OPENAI_MODEL = "gpt-4.1"
GROQ_MODEL = "llama-3.3-70b-versatile"
DEFAULT_API_VERSION = "2025-01-01-preview"
TEMPERATURE = 0.2

CONVERGENC3_INSTRUCTIONS = """
You are a Business Analyst expert creating a complete Business Requirements Document (BRD)
by extracting REAL information from the uploaded documents. Use South African Rand (R) for currency.

CRITICAL INSTRUCTIONS:
1. Read and analyze the ENTIRE uploaded content carefully.
2. Extract actual project details, stakeholders, requirements and business problems.
3. Generate user stories based on the REAL capabilities described in the content.
4. Do not use generic examples. Everything must come from the uploaded content.
5. If information is missing, write "To be determined during requirements gathering".
- Do not include "<br>", "<br/>" or any other HTML line break. Use real line breaks.
- Use markdown headings, lists and pipe tables only.
- The only fenced code allowed is a ```mermaid flowchart under 8.1 and 9.1.

STRUCTURE (follow exactly):
# <Project name> Business Requirements Document

## Executive Summary
ONE paragraph under 100 words: what the project is, why it exists, the problem it solves,
the solution approach and key benefits.

## 1 Governance: Stakeholder List
Table with columns: Name & Surname, Role, Review Type.

## 2 Revision History
Table with columns: Version, Date, Author, Document Name, Summary of Changes.
Version 0.1 uses the current date given in the request.

## 3 Supporting Documents
Table with columns: Version No, Document Name, Description, Author, Location/Link.

## 4 Glossary
Two-column table (Term, Definition), alphabetical, 10 real terms.

## 5 Business Problem/Opportunity
2-3 paragraphs, no more than 150 words.

## 6.1 Business Objectives
Table with 4 objectives (BO1, BO2, ...): Objective ID, Objective Description, Key Strategic Drivers.

## 7 Scope
### In Scope / Out of Scope
Bulleted lists of real capabilities and exclusions.

## 8 Current State/As-Is
3-4 paragraphs describing current processes.
### 8.1 Business Process Map Diagram
A ```mermaid flowchart TD block of the current process.

## 9 Future State/To-Be
3-4 paragraphs describing the future vision.
### 9.1 Business Process Map Diagram
A ```mermaid flowchart TD block of the future process.

## 10 Business Requirements
### 10.1 High Level Requirements
Table: ID | User Story | Description | MoSCoW Priority | Business Objective, one row per capability (A1, A2, ...).

### 10.2 Business Requirements
For EVERY user story in 10.1 write:
#### User Story A<n>: <capability>
A table with rows As a / I want to / So that / Impacted Systems,
then "Business Rules:" as a numbered list of at least 7 rules,
then "Business Requirements:" as lines BR A<n>.1 to BR A<n>.8.

## Appendices
### Appendix A: Reference Materials
### Appendix B: Assumptions Log
### Appendix C: Risk Register
### Appendix D: Dependencies
"""

TEMPLATE_FOCUS = {
    "convergenc3": "",
    "agile": "FOCUS ON AGILE: Emphasize user stories, epics, acceptance criteria and sprint planning. Use agile terminology and lightweight structure.",
    "it-technical": "FOCUS ON TECHNICAL: Emphasize architecture, integration requirements, non-functional requirements and security. Use technical terminology.",
    "corporate": "FOCUS ON CORPORATE: Emphasize formal structure, approval processes, risk assessment and executive summaries suitable for board presentation.",
}

REQUEST_TEMPLATE = """Generate a complete, professional Business Requirements Document following the structure exactly.

MANDATORY DATE REQUIREMENT: use {today} (YYYY-MM-DD) as the date of Version 0.1 in the Revision History.
Do not use any other date.

PROJECT DOCUMENTATION (use all relevant information):
{requirements}
{context}
INSTRUCTIONS:
1. Extract the ACTUAL project name, objectives, stakeholders and requirements from the documentation above.
2. Use the REAL business problems, opportunities and solutions described in the content.
3. If specific details are missing, make reasonable inferences and record them as assumptions.
"""


def build_llm(provider, api_key, azure_endpoint=None, azure_deployment=None, api_version=None, model_name=None):
    """Chat model for the selected provider."""
    if not api_key:
        raise GenerationError("Please enter your API key!")

    if provider == "OpenAI":
        return ChatOpenAI(api_key=api_key, model=model_name or OPENAI_MODEL, temperature=TEMPERATURE)
    if provider == "AzureOpenAI":
        if not azure_endpoint or not azure_deployment:
            raise GenerationError("Azure OpenAI needs an endpoint and a deployment name")
        return AzureChatOpenAI(
            azure_endpoint=azure_endpoint,
            api_key=api_key,
            azure_deployment=azure_deployment,
            api_version=api_version or DEFAULT_API_VERSION,
            temperature=TEMPERATURE,
        )
    if provider == "Groq":
        return ChatGroq(api_key=api_key, model=model_name or GROQ_MODEL, temperature=TEMPERATURE)
    raise GenerationError(f"Unknown API provider: {provider}")


def build_prompt():
    return ChatPromptTemplate.from_messages(
        [
            ("system", "{instructions}"),
            ("human", REQUEST_TEMPLATE),
        ]
    )


def template_instructions(template_id):
    template_id = template_id or "convergenc3"
    if template_id not in TEMPLATE_FOCUS:
        raise GenerationError(f"Unknown BRD template: {template_id}")
    focus = TEMPLATE_FOCUS[template_id]
    return CONVERGENC3_INSTRUCTIONS + ("\n" + focus if focus else "")


def format_context(chunks):
    if not chunks:
        return ""
    blocks = [f"[Context {number}]:\n{chunk}" for number, chunk in enumerate(chunks, 1)]
    return "\nADDITIONAL CONTEXT FROM DOCUMENT SEARCH:\n\n" + "\n\n".join(blocks) + "\n"


def generate_brd(llm, requirements, context=None, template_id="convergenc3", today=None):
    """Run the BRD chain and return the generated markdown."""
    if not requirements or not requirements.strip():
        raise InputEmptyError("No document content provided. Please upload a document first.")

    today = today or date.today()
    chain = build_prompt() | llm | StrOutputParser()
    inputs = {
        "instructions": template_instructions(template_id),
        "today": today.isoformat() if isinstance(today, date) else str(today),
        "requirements": truncate_for_prompt(requirements.strip()),
        "context": format_context(context),
    }
    logger.info(
        "Generating BRD: %d characters of requirements, %d context chunk(s), template %s",
        len(inputs["requirements"]),
        len(context or []),
        template_id,
    )

    try:
        result = chain.invoke(inputs)
    except Exception as e:
        raise GenerationError(f"BRD generation failed: {e}") from e

    if not result or not result.strip():
        raise GenerationError("The model returned an empty BRD")
    logger.info("BRD generated: %d characters", len(result))
    return result.strip()
