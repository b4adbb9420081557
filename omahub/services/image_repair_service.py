"""
Image repair service.

Reassigns brand/product images from an explicit mapping table instead of
guessing from upload timestamps. Runs as a dry run unless asked to apply,
skips rows that are already in the desired state, and records every
planned change in `image_repair_log`.

Mapping CSV columns: entity_type,entity_id,image
"""
import csv
import logging
from typing import Iterable, List, Dict, Any
from omahub.models import Brand, Product, ImageRepairLog

logger = logging.getLogger(__name__)

ENTITY_MODELS = {
    'brand': Brand,
    'product': Product,
}

REQUIRED_COLUMNS = ('entity_type', 'entity_id', 'image')


def read_mapping(stream) -> List[Dict[str, str]]:
    """
    Parse the mapping CSV.

    Raises:
        ValueError: header is missing a required column
    """
    reader = csv.DictReader(stream)
    missing = [c for c in REQUIRED_COLUMNS if c not in (reader.fieldnames or [])]
    if missing:
        raise ValueError(f"Mapping file is missing column(s): {', '.join(missing)}")

    rows = []
    for line_no, row in enumerate(reader, start=2):
        rows.append({
            'line': line_no,
            'entity_type': (row.get('entity_type') or '').strip().lower(),
            'entity_id': (row.get('entity_id') or '').strip(),
            'image': (row.get('image') or '').strip(),
        })
    return rows


def plan_image_repairs(session, rows: Iterable[Dict[str, Any]], storage=None) -> Dict[str, List[Dict[str, Any]]]:
    """
    Validate mapping rows against the database (and storage, if given).

    Returns:
        {'changes': [...], 'unchanged': [...], 'errors': [...]}
        Each change holds entity_type, entity_id, old_image, new_image.
    """
    changes, unchanged, errors = [], [], []
    seen = set()

    for row in rows:
        entity_type = row.get('entity_type')
        entity_id = row.get('entity_id')
        image = row.get('image')
        line = row.get('line')

        model = ENTITY_MODELS.get(entity_type)
        if model is None:
            errors.append({**row, 'reason': f"unknown entity type '{entity_type}'"})
            continue
        if not entity_id or not image:
            errors.append({**row, 'reason': 'entity_id and image are required'})
            continue
        if (entity_type, entity_id) in seen:
            errors.append({**row, 'reason': 'duplicate mapping for entity'})
            continue
        seen.add((entity_type, entity_id))

        entity = session.query(model).filter(model.id == entity_id).first()
        if entity is None:
            errors.append({**row, 'reason': f'{entity_type} not found'})
            continue

        if entity.image == image:
            unchanged.append({'line': line, 'entity_type': entity_type, 'entity_id': entity_id, 'image': image})
            continue

        if storage is not None:
            key = storage.object_key(image)
            if key is None or not storage.file_exists(key):
                errors.append({**row, 'reason': 'image not found in storage'})
                continue

        changes.append({
            'line': line,
            'entity_type': entity_type,
            'entity_id': entity_id,
            'old_image': entity.image,
            'new_image': image,
        })

    return {'changes': changes, 'unchanged': unchanged, 'errors': errors}


def apply_image_repairs(session, plan: Dict[str, List[Dict[str, Any]]], batch_id: str, dry_run: bool = True) -> int:
    """
    Record (and unless dry_run, apply) the planned changes in one transaction.

    Returns:
        Number of entities updated (0 on a dry run)
    """
    changes = plan['changes']
    applied = 0
    try:
        for change in changes:
            session.add(ImageRepairLog(
                batch_id=batch_id,
                entity_type=change['entity_type'],
                entity_id=change['entity_id'],
                old_image=change['old_image'],
                new_image=change['new_image'],
                applied=not dry_run
            ))
            if dry_run:
                continue

            model = ENTITY_MODELS[change['entity_type']]
            entity = session.query(model).filter(model.id == change['entity_id']).first()
            entity.image = change['new_image']
            applied += 1

        session.commit()
    except Exception:
        session.rollback()
        logger.exception(f"[IMAGES] Batch {batch_id} failed; nothing applied")
        raise

    logger.info(f"[IMAGES] Batch {batch_id}: {len(changes)} change(s) logged, {applied} applied (dry_run={dry_run})")
    return applied


def get_batch_log(session, batch_id: str) -> List[ImageRepairLog]:
    return session.query(ImageRepairLog).filter(
        ImageRepairLog.batch_id == batch_id
    ).order_by(ImageRepairLog.created_at).all()
