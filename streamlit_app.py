import os
import re

import streamlit as st

from brd_builder import DOCX, PDF, BrdBuilderError, DiagramSource, extract_mermaid_blocks, render_document
from brd_builder.extractors import SUPPORTED_EXTENSIONS, combine_documents, extract
from brd_builder.generator import PROVIDERS, TEMPLATE_FOCUS, build_llm, generate_brd
from brd_builder.retrieval import ChunkIndex, build_embeddings

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


@st.cache_resource
def initialize_llm(api_provider, api_key, azure_endpoint=None, azure_deployment=None, api_version=None):
    return build_llm(
        api_provider,
        api_key,
        azure_endpoint=azure_endpoint,
        azure_deployment=azure_deployment,
        api_version=api_version,
    )


def collect_requirements(uploaded_files, manual_requirements):
    documents = []

    if manual_requirements.strip():
        documents.append(("MANUAL REQUIREMENTS", manual_requirements.strip()))

    if uploaded_files:
        st.info(f"Processing {len(uploaded_files)} uploaded files...")

    for uploaded_file in uploaded_files or []:
        st.write(f"Processing: {uploaded_file.name}")
        try:
            content = extract(uploaded_file.name, uploaded_file.getvalue())
        except BrdBuilderError as e:
            st.warning(str(e))
            continue
        documents.append((uploaded_file.name, content))
        st.success(f"Successfully processed: {uploaded_file.name}")

    return documents


def search_context(api_key, text, query):
    index = ChunkIndex(build_embeddings(api_key))
    index.add_text(text)
    results = index.search(query)
    for result in results:
        print(f"Context chunk {result.index} (similarity {result.similarity:.3f})")
    return [result.text for result in results]


@st.cache_data(show_spinner=False)
def build_document(brd_content, fmt, logo_data):
    diagrams = [DiagramSource(code) for code in extract_mermaid_blocks(brd_content)]
    return render_document(brd_content, diagrams=diagrams, fmt=fmt, logo=logo_data)


def render_downloads(brd_content, logo_data):
    diagram_count = len(extract_mermaid_blocks(brd_content))
    if diagram_count:
        st.info(f"Rendering {diagram_count} process diagram(s)...")

    for fmt, label, mime in ((DOCX, "Word Document", DOCX_MIME), (PDF, "PDF", "application/pdf")):
        try:
            with st.spinner(f"Creating {label}..."):
                result = build_document(brd_content, fmt, logo_data)
        except BrdBuilderError as e:
            st.error(f"Error creating {label}: {str(e)}")
            continue

        print(f"{fmt.upper()}: {result.page_count} pages, {result.diagrams_embedded}/{diagram_count} diagrams, {result.tables_rendered} tables")
        file_stem = re.sub(r"\W+", "_", result.title).strip("_") or "Business_Requirements_Document"
        st.download_button(
            label=f"Download BRD ({label})",
            data=result.data,
            file_name=f"{file_stem}_BRD.{fmt}",
            mime=mime,
            key=f"download-{fmt}",
        )

    st.download_button(
        label="Download BRD (Markdown)",
        data=brd_content,
        file_name="Business_Requirements_Document.md",
        mime="text/markdown",
        key="download-md",
    )


st.title("Business Requirements Document Generator")

st.subheader("AI Model Selection")
api_provider = st.radio("Select API Provider:", PROVIDERS)

azure_endpoint = azure_deployment = api_version = None
if api_provider == "OpenAI":
    api_key = st.text_input("Enter your OpenAI API Key:", value=os.environ.get("OPENAI_API_KEY", ""), type="password")
elif api_provider == "AzureOpenAI":
    api_key = st.text_input(
        "Enter your Azure OpenAI API Key:", value=os.environ.get("AZURE_OPENAI_API_KEY", ""), type="password"
    )
    azure_endpoint = st.text_input(
        "Enter your Azure OpenAI Endpoint:",
        value=os.environ.get("AZURE_OPENAI_ENDPOINT", ""),
        placeholder="https://your-resource.openai.azure.com/",
    )
    azure_deployment = st.text_input(
        "Enter your Azure Deployment Name:",
        value=os.environ.get("AZURE_OPENAI_DEPLOYMENT", ""),
        placeholder="gpt-4.1",
    )
    api_version = st.text_input(
        "Enter API Version (optional):",
        value=os.environ.get("AZURE_OPENAI_API_VERSION", "2025-01-01-preview"),
    )
else:
    api_key = st.text_input("Enter your Groq API Key:", value=os.environ.get("GROQ_API_KEY", ""), type="password")

template_id = st.selectbox("BRD Template:", list(TEMPLATE_FOCUS))

st.subheader("Document Logo")

logo_file = st.file_uploader("Upload Company Logo (optional):", type=["png", "jpg", "jpeg"])
logo_data = None
if logo_file:
    logo_data = logo_file.getvalue()
    st.success("Logo uploaded successfully!")

st.subheader("Upload Requirements Documents")
uploaded_files = st.file_uploader("Choose files", type=list(SUPPORTED_EXTENSIONS), accept_multiple_files=True)

st.subheader("Or Enter Requirements Manually")
manual_requirements = st.text_area(
    "Paste your requirements here:",
    height=200,
    placeholder="Enter your business requirements, user stories, or project specifications here...",
)

context_query = ""
if api_provider == "OpenAI":
    context_query = st.text_input(
        "Search the uploaded documents for extra context (optional):",
        placeholder="e.g. approval workflow",
    )

if st.button("Generate BRD", type="primary"):
    if not api_key:
        st.error("Please enter your API key!")
    elif not uploaded_files and not manual_requirements.strip():
        st.error("Please upload files or enter requirements manually!")
    else:
        try:
            with st.spinner("Initializing AI model"):
                llm = initialize_llm(api_provider, api_key, azure_endpoint, azure_deployment, api_version)

            documents = collect_requirements(uploaded_files, manual_requirements)
            if not documents:
                raise BrdBuilderError("No valid content found in uploaded files!")

            combined_requirements = combine_documents(documents)
            st.info(f"Total content size: {len(combined_requirements):,} characters")

            context = []
            if context_query.strip():
                with st.spinner("Searching documents for context..."):
                    context = search_context(api_key, combined_requirements, context_query)
                st.info(f"Found {len(context)} relevant context chunk(s)")

            with st.spinner("Generating comprehensive BRD..."):
                st.session_state["brd_content"] = generate_brd(
                    llm, combined_requirements, context=context, template_id=template_id
                )
            st.success("BRD generated successfully!")

        except Exception as e:
            st.error(f"An error occurred: {str(e)}")
            st.info("Try reducing the input size or check your API key.")

brd_content = st.session_state.get("brd_content")
if brd_content:
    st.subheader("Generated BRD Content")
    with st.expander("Preview Generated BRD", expanded=False):
        st.markdown(brd_content)

    st.subheader("Download Options")
    render_downloads(brd_content, logo_data)
