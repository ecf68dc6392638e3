# System message for chat-style providers
SYSTEM_PROMPT = "You are a helpful programming assistant for a developer Q&A forum."

# Standard prompt for drafting an answer
ANSWER_PROMPT_TEMPLATE = """You are a helpful programming assistant. Provide a clear, concise, and accurate answer to the following question. Include code examples if relevant, and format your response in a well-structured manner.

Question: {question}

Please provide a comprehensive answer that would help the person asking this question."""


def build_answer_prompt(question: str) -> str:
    return ANSWER_PROMPT_TEMPLATE.format(question=question.strip())
