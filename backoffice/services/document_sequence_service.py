"""
Document numbering for purchase orders and GRNs.

Numbers run per business and document type: PO-00001, GRN-00001, ...
The sequence row is read with SELECT FOR UPDATE so two concurrent requests
cannot be handed the same number.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.document_sequence import DocumentSequence


DOCUMENT_METADATA = {
    "PO": {"name": "Purchase Order", "padding": 5},
    "GRN": {"name": "Goods Receipt Note", "padding": 5},
}


class DocumentSequenceService:
    """Service for generating per-business document numbers."""

    def __init__(self, db: AsyncSession, business_id: str):
        self.db = db
        self.business_id = business_id

    async def _get_or_create_sequence(self, document_type: str) -> DocumentSequence:
        result = await self.db.execute(
            select(DocumentSequence)
            .where(
                DocumentSequence.business_id == self.business_id,
                DocumentSequence.document_type == document_type,
            )
            .with_for_update()
        )
        sequence = result.scalar_one_or_none()
        if sequence is None:
            sequence = DocumentSequence(
                business_id=self.business_id,
                document_type=document_type,
                current_number=0,
                padding=DOCUMENT_METADATA[document_type]["padding"],
            )
            self.db.add(sequence)
        return sequence

    async def get_next_number(self, document_type: str) -> str:
        """
        Allocate the next number for ``document_type``.

        Raises:
            ValueError: If document_type is not a numbered document
        """
        doc_type = document_type.upper()
        if doc_type not in DOCUMENT_METADATA:
            valid_types = ", ".join(DOCUMENT_METADATA.keys())
            raise ValueError(f"Invalid document type '{doc_type}'. Valid types: {valid_types}")

        sequence = await self._get_or_create_sequence(doc_type)
        doc_number = sequence.get_next_number()
        await self.db.flush()
        return doc_number
