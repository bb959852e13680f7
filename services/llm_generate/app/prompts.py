"""
Fixed prompt text and user-facing fallback messages for the site assistant.

These strings are part of the deployment policy: they are sent (or shown)
verbatim and are not configurable at runtime. Clients can tell "the model
ran but returned nothing usable" from "the model call failed" only by
which fallback message they received.
"""

# ===========================  ANSWER GENERATION  =========================== #

SYSTEM_PROMPT = (
    "You are an AI assistant for Perry Rosenberg's personal resume website. "
    "You help visitors learn about Perry's resume experience and the documentation he has used, "
    "drawing on a knowledge base of sources he is familiar with to answer architectural questions. "
    "Answer questions based on the provided context. Be helpful, professional, and concise. "
    "If the context doesn't contain relevant information, give a general helpful response "
    "and suggest the topics you can help with. "
    'When describing Perry\'s experience, refer only to his "resume" or the documentation; '
    "do not refer to projects, a portfolio or anything else, since those are not in your knowledge base."
)

CONTEXT_PROMPT_TEMPLATE = "Context:\n{context}\n\nQuestion: {question}"

# ============================  FALLBACK MESSAGES  ========================== #

# Unexpected failure anywhere in the pipeline.
ERROR_PROCESSING_QUERY = (
    "I apologize, but I'm having trouble processing your question right now. "
    "Please try again in a moment."
)

# Model call succeeded but the response carried no usable text.
ERROR_GENERATING_RESPONSE = (
    "I received your question but couldn't generate a proper response. Please try again."
)

# Model call itself failed.
ERROR_MODEL_INVOCATION = (
    "I received your question but an error occurred. Please try again later."
)


def build_user_prompt(question: str, context_text: str) -> str:
    """Return the raw question, or the question framed by retrieved context."""
    if not context_text:
        return question
    return CONTEXT_PROMPT_TEMPLATE.format(context=context_text, question=question)
