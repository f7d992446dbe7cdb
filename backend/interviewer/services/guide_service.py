# /interviewer/services/guide_service.py

import logging
from typing import Any, Dict, List, Optional, Sequence

from interviewer.models.guide import Guide, GuideContent, GuideVersion, Question
from interviewer.services.db_service import DatabaseService, db_service
from interviewer.utils.alerting import alerting_service
from interviewer.utils.exceptions import (
    GuideNotFound,
    IntegrityViolation,
    NoActiveVersion,
    ValidationError,
    VersionNotFound,
)
from interviewer.utils.metrics import guide_versions_counter
from interviewer.workflows import question_tree

logger = logging.getLogger(__name__)


class GuideService:
    """
    Versioned discussion guides.

    Every create/update writes a brand-new immutable GuideVersion and makes it
    the only active one. Activation swaps the active version atomically.
    """

    def __init__(self, db: DatabaseService):
        self.db = db

    async def create_or_update_guide(
        self, title: str, description: Optional[str], questions: Sequence[Question]
    ) -> Dict[str, Any]:
        if not questions:
            raise ValidationError("A guide needs at least one question")
        duplicates = question_tree.find_duplicate_ids(questions)
        if duplicates:
            raise ValidationError(f"Question ids must be unique within a guide: {', '.join(duplicates)}")

        async def _upsert(txn) -> Guide:
            guide = await self.db.find_guide_by_title(title, txn=txn)
            if guide is None:
                guide = Guide(title=title, description=description, current_version=1)
                existed = False
            else:
                guide.current_version += 1
                guide.description = description
                existed = True

            await self.db.save_guide(guide, txn=txn)

            if existed:
                await self.db.deactivate_all_versions(guide.id, txn=txn)

            await self.db.save_version(GuideVersion(
                guide_id=guide.id,
                version=guide.current_version,
                content=GuideContent(
                    title=title,
                    description=description,
                    questions=list(questions),
                    version=guide.current_version
                ),
                is_active=True
            ), txn=txn)
            return guide

        guide = await self.db.run_in_transaction(_upsert)
        guide_versions_counter.labels(operation="created").inc()
        logger.info(f"Guide '{guide.title}' ({guide.id}) now at version {guide.current_version}")

        return {
            "id": guide.id,
            "version": guide.current_version,
            "title": guide.title,
            "description": guide.description,
        }

    async def list_guides(self) -> List[Dict[str, Any]]:
        guides = await self.db.list_guides()
        return [guide.model_dump(mode="json") for guide in guides]

    async def get_active_version(self, guide_id: str) -> GuideVersion:
        """
        The single active version of a guide.

        Raises GuideNotFound if the guide is absent, NoActiveVersion if none
        is active and IntegrityViolation if more than one is.
        """
        guide = await self.db.find_guide_by_id(guide_id)
        if guide is None:
            raise GuideNotFound()

        active_versions = await self.db.find_active_versions(guide_id)
        if not active_versions:
            logger.error(f"Guide {guide_id} has no active version")
            raise NoActiveVersion()
        if len(active_versions) > 1:
            numbers = sorted(v.version for v in active_versions)
            logger.error(f"Guide {guide_id} has {len(active_versions)} active versions: {numbers}")
            await alerting_service.send_critical_alert(
                "Multiple active guide versions",
                {"guide_id": guide_id, "active_versions": numbers}
            )
            raise IntegrityViolation(f"Guide {guide_id} has more than one active version")

        return active_versions[0]

    async def get_active_guide_content(self, guide_id: str) -> Dict[str, Any]:
        guide = await self.db.find_guide_by_id(guide_id)
        if guide is None:
            raise GuideNotFound()
        active_version = await self.get_active_version(guide_id)
        return {
            **guide.model_dump(mode="json"),
            **active_version.content.model_dump(mode="json"),
            "version_id": active_version.id,
        }

    async def list_versions(self, guide_id: str) -> List[Dict[str, Any]]:
        versions = await self.db.list_versions(guide_id)
        if not versions:
            raise GuideNotFound()
        return [version.model_dump(mode="json") for version in versions]

    async def activate_version(self, guide_id: str, version_number: int) -> Dict[str, Any]:
        async def _activate(txn) -> None:
            guide = await self.db.find_guide_by_id(guide_id, txn=txn)
            if guide is None:
                raise GuideNotFound()

            if await self.db.find_version(guide_id, version_number, txn=txn) is None:
                raise VersionNotFound()

            await self.db.deactivate_all_versions(guide_id, txn=txn)
            await self.db.set_version_active(guide_id, version_number, txn=txn)
            # Writing the guide document makes concurrent activations conflict
            await self.db.save_guide(guide, txn=txn)

        await self.db.run_in_transaction(_activate)
        guide_versions_counter.labels(operation="activated").inc()
        logger.info(f"Activated version {version_number} of guide {guide_id}")

        return {"message": "Version activated successfully", "guide_id": guide_id, "version": version_number}


# Globally accessible instance
guide_service = GuideService(db_service)
