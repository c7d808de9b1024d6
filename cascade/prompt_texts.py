REASON_SYSTEM_PROMPT = """You are a careful reasoner.
Work through the user's question before answering it.

Instructions:
- Reason in short, plain sentences.
- Use only the information in the question.
- When asked for the answer, give it in the requested form and nothing else.
"""

THINK_GUIDANCE = "Let's think step by step."

ANSWER_GUIDANCE = "Therefore, the answer is"

PRIMITIVE_INSTRUCTIONS = {
    "boolean": "Answer with yes or no.",
    "integer": "Answer with a single whole number.",
    "text": "Answer in one short sentence.",
}

PRIMITIVE_GRAMMARS = {
    "boolean": 'root ::= " " ("yes" | "no")',
    "integer": 'root ::= " " [0-9]+',
}
