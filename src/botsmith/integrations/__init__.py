"""
botsmith.integrations - External Service Adapters
===================================================

    llm/        AI model providers (mock, Amazon Bedrock)
    platform/   Conversational platform clients (in-memory, Amazon Lex V2)
    storage/    Object storage (in-memory, Amazon S3)
"""
