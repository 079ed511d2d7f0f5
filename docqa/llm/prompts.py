"""LangChain prompt templates for grounded answer generation."""

from langchain_core.prompts import ChatPromptTemplate

# ── System Prompt ────────────────────────────────────────────────────────────

SYSTEM_PROMPT = """\
You are a helpful assistant answering questions about the user's uploaded
documents. Use only the provided context to answer. If the answer isn't in
the context, say so plainly instead of guessing.
"""

# ── Answer Prompt ────────────────────────────────────────────────────────────

ANSWER_PROMPT = ChatPromptTemplate.from_messages(
    [
        ("system", SYSTEM_PROMPT),
        (
            "human",
            """\
## Context
{context}

## Question
{query}
""",
        ),
    ]
)

NO_CONTEXT_ANSWER = (
    "I couldn't find any relevant information in the uploaded documents to answer "
    "this question. Upload a document and generate its embeddings, then try again."
)
