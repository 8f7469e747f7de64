"""
Bulk worker import from Excel workbooks.

The first sheet is read as a header row plus data rows. Headers are mapped
onto canonical column keys, each row is validated into an `ImportedWorker`
(with user facing French errors and warnings), and only valid rows are
inserted, in one commit.
"""

import io
import logging
import re
import time
import uuid
from datetime import date, datetime, UTC
from typing import Any, Dict, Iterable, List, Optional, Tuple

from openpyxl import Workbook, load_workbook
from openpyxl.utils import get_column_letter
from sqlalchemy.orm import Session

from housing.audit import AuditAction, log as audit_log
from housing.db import models, schemas
from housing.db.repositories import workers as worker_repo
from housing.services import occupancy_service
from housing.services.occupancy_service import GENRE_SECTOR
from housing.services.worker_registration_service import compute_age, new_period
from housing.utils.farm_history import get_farm_name
from housing.utils.motifs import get_motif_label

logger = logging.getLogger(__name__)

XLSX_MEDIA_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
TEMPLATE_FILENAME = 'modele_import_ouvriers.xlsx'
TEMPLATE_SHEET = 'Modèle Ouvriers'
IMPORT_ALLOCATOR = 'import-system'

COLUMN_MAPPINGS: Dict[str, List[str]] = {
    'nom': ['nom', 'name', 'prénom', 'prenom', 'nom complet', 'full name'],
    'cin': ['cin', 'cni', 'carte identité', 'carte_identite', 'id', 'identity'],
    'matricule': ['matricule', 'employee id', 'employee_id', 'employeeid', 'worker id', 'worker_id', 'mat', 'matricul'],
    'telephone': ['telephone', 'téléphone', 'phone', 'tel', 'mobile', 'gsm'],
    'sexe': ['sexe', 'gender', 'genre', 'sex'],
    'age': ['age', 'âge', 'years', 'ans'],
    'dateNaissance': ['date de naissance', 'date_de_naissance', 'datedenaissance', 'date naissance', 'birth date', 'birthday', 'date_naissance'],
    'chambre': ['chambre', 'room', 'numero chambre', 'room number', 'chamber'],
    'ferme': ['ferme', 'farm', 'exploitation', 'site'],
    'superviseur': ['superviseur', 'supervisor', 'chef', 'responsable', 'supervisor name'],
    'dateAcces': ['date accès', 'date_acces', 'dateacces', 'access date', 'date access', "date d'accès", 'date dacces'],
    'eponge': ['eponge', 'éponge', 'sponge', 'eponge oui non', 'eponge (oui/non)', 'éponge (oui/non)', 'allocation eponge', 'allocation éponge'],
    'lit': ['lit', 'bed', 'couchage', 'lit oui non', 'lit (oui/non)'],
    'placard': ['placard', 'armoire', 'wardrobe', 'placard (oui/non)'],
}

MALE_VALUES = frozenset({'homme', 'h', 'm', 'male', 'masculin', '1', 'man'})
FEMALE_VALUES = frozenset({'femme', 'f', 'female', 'féminin', 'feminin', '2', 'woman'})
YES_VALUES = frozenset({'oui', 'yes', 'y', 'o', '1', 'true', 'vrai'})
NO_VALUES = frozenset({'non', 'no', 'n', '0', 'false', 'faux'})

# Column key -> stock item name / allocated item label
EQUIPMENT_COLUMNS = (('eponge', 'EPONGE'), ('lit', 'LIT'), ('placard', 'PLACARD'))

MIN_AGE, MAX_AGE = 16, 70

TEMPLATE_ROWS = [
    {
        'matricule': '32164', 'nom': 'Ahmed Fatmi', 'cin': 'AA123456', 'telephone': '0612345678',
        'sexe': 'homme', 'date de naissance': '1999-03-15', 'date accès': '2024-01-15', 'chambre': '2',
        'ferme': 'FINCA 20', 'superviseur': 'LAHCEN ACHLOU (AGRI STRATÉGIE)',
        'eponge': 'oui', 'lit': 'oui', 'placard': 'oui',
    },
    {
        'matricule': '64058', 'nom': 'Fatima AZIZ', 'cin': 'FB789012', 'telephone': '0687654321',
        'sexe': 'femme', 'date de naissance': '1994-07-22', 'date accès': '2024-01-20', 'chambre': '5',
        'ferme': 'FINCA 13', 'superviseur': 'ABDELLILAH  (AGRI SUPPORT)',
        'eponge': 'non', 'lit': 'oui', 'placard': 'non',
    },
    {
        'matricule': '701', 'nom': 'ABDELAZIZ REBANI', 'cin': 'TC999999', 'telephone': '0699999999',
        'sexe': 'homme', 'date de naissance': '1995-12-01', 'date accès': '2024-02-01', 'chambre': '10',
        'ferme': 'FINCA 20', 'superviseur': 'LAHCEN ACHLOU (AGRI STRATÉGIE)',
        'eponge': 'oui', 'lit': 'oui', 'placard': 'non',
    },
]

EXPORT_HEADERS = [
    'Matricule', 'Nom', 'CIN', 'Téléphone', 'Sexe', 'Âge', 'Année de naissance', 'Ferme', 'Chambre',
    'Secteur', 'Superviseur', "Date d'entrée", 'Date de sortie', 'Motif de sortie', 'Statut',
]

_NON_WORD = re.compile(r'[^\w]', re.ASCII)
_DAY_FIRST = re.compile(r'^(\d{1,2})[/\\-](\d{1,2})[/\\-](\d{4})$')
_DAY_FIRST_SHORT = re.compile(r'^(\d{1,2})[/\\-](\d{1,2})[/\\-](\d{2})$')


class ImportFileError(ValueError):
    """Workbook that cannot be read or holds no data rows."""


def _clean(value: str) -> str:
    return _NON_WORD.sub('', value.lower().strip())


_CLEAN_MAPPINGS = {key: [_clean(v) for v in variants] for key, variants in COLUMN_MAPPINGS.items()}


def normalize_column_name(column: str) -> str:
    """
    Canonical key for a spreadsheet header.

    An exact match against any known variant wins; otherwise the first
    key with a variant contained in the header (or containing it) is used.
    Unknown headers come back normalized.
    """
    normalized = _clean(str(column))
    if not normalized:
        return normalized
    for key, variants in _CLEAN_MAPPINGS.items():
        if normalized in variants:
            return key
    for key, variants in _CLEAN_MAPPINGS.items():
        if any(v and (v in normalized or normalized in v) for v in variants):
            return key
    return normalized


def normalize_row(row: Dict[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for column, value in row.items():
        key = normalize_column_name(column)
        # First column mapped to a key wins
        if key and key not in normalized:
            normalized[key] = value
    return normalized


def _text(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_date(value: Any) -> Optional[date]:
    """Cell value to a date: Excel dates, ISO strings, `/` separated ISO, DD/MM/YYYY and DD/MM/YY."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _text(value)
    if not text:
        return None
    candidates = [text, re.sub(r'[/\\]', '-', text)]
    match = _DAY_FIRST.match(text)
    if match:
        candidates.append(f"{match.group(3)}-{int(match.group(2)):02d}-{int(match.group(1)):02d}")
    match = _DAY_FIRST_SHORT.match(text)
    if match:
        candidates.append(f"20{match.group(3)}-{int(match.group(2)):02d}-{int(match.group(1)):02d}")
    for candidate in candidates:
        try:
            return datetime.fromisoformat(candidate).date()
        except ValueError:
            continue
    return None


def read_workbook(content: bytes) -> List[Dict[str, Any]]:
    """Rows of the first sheet as dicts keyed by header; blank rows are skipped."""
    try:
        workbook = load_workbook(io.BytesIO(content), data_only=True, read_only=True)
    except Exception as exc:
        logger.warning("Unreadable workbook: %s", exc)
        raise ImportFileError('Erreur lors de la lecture du fichier Excel. Vérifiez que le format est correct.') from exc

    sheet = workbook[workbook.sheetnames[0]]
    rows_iter = sheet.iter_rows(values_only=True)
    header_row = next(rows_iter, None)
    headers = [_text(h) for h in (header_row or [])]

    rows = []
    for values in rows_iter:
        if all(v is None or _text(v) == '' for v in values):
            continue
        rows.append({h: v for h, v in zip(headers, values) if h})
    workbook.close()
    if not rows:
        raise ImportFileError('Le fichier Excel est vide ou ne contient pas de données valides.')
    return rows


class _ImportContext:
    """Snapshot of the reference data every row is validated against."""

    def __init__(self, db: Session, actor: models.User):
        self.actor = actor
        self.is_superadmin = actor.is_superadmin
        self.user_farm_id = actor.farm_id
        self.farms = db.query(models.Farm).all()
        self.rooms = db.query(models.Room).all()
        self.supervisors = [s for s in db.query(models.Supervisor).all() if (s.name or '').strip()]
        self.stock = db.query(models.StockItem).all()
        self.existing_by_cin = {w.cin.lower(): w for w in worker_repo.get_all_workers(db) if w.cin}
        self.seen_cins: Dict[str, int] = {}

    def farm_for(self, value: str) -> Optional[models.Farm]:
        lowered = value.lower()
        return next((f for f in self.farms if f.name.lower() == lowered or str(f.id) == value), None)

    def room(self, farm_id, number: str, genre: Optional[str] = None) -> Optional[models.Room]:
        return next(
            (r for r in self.rooms
             if r.farm_id == farm_id and r.number == number and (genre is None or r.gender == genre)),
            None,
        )

    def supervisor_for(self, value: str) -> Optional[models.Supervisor]:
        lowered = value.lower()
        return next(
            (s for s in self.supervisors if lowered in s.name.lower() or s.name.lower() in lowered),
            None,
        )

    def stock_for(self, farm_id, item: str) -> Optional[models.StockItem]:
        return next((s for s in self.stock if s.farm_id == farm_id and (s.item or '').lower() == item), None)


class ImportService:
    """Service class for previewing and committing spreadsheet imports."""

    def __init__(self, db: Session):
        self.db = db

    # === Validation ===

    def validate_row(self, data: Dict[str, Any], row_index: int, ctx: _ImportContext) -> schemas.ImportRowResult:
        """Validate one normalized row; never raises for bad data."""
        errors: List[str] = []
        warnings: List[str] = []
        today = models.today_utc()
        worker: Dict[str, Any] = {}

        name = _text(data.get('nom'))
        if not name:
            errors.append('Nom requis')
        worker['name'] = name

        cin = _text(data.get('cin'))
        if not cin:
            errors.append('CIN requis')
        worker['cin'] = cin

        matricule = _text(data.get('matricule'))
        worker['matricule'] = matricule or None

        gender_raw = _text(data.get('sexe')).lower()
        gender = 'homme' if gender_raw in MALE_VALUES else 'femme' if gender_raw in FEMALE_VALUES else None
        if gender is None:
            errors.append('Sexe invalide (homme/femme)')
        worker['gender'] = gender

        age = self._age(data, worker, errors, today)
        if age is None or age < MIN_AGE or age > MAX_AGE:
            errors.append("Âge invalide (16-70) - vérifiez la date de naissance ou l'âge")
        else:
            worker['age'] = age

        phone = _text(data.get('telephone'))
        if phone:
            digits = re.sub(r'[^\d+]', '', phone)
            if len(digits) < 8 or len(digits) > 15:
                errors.append('Format téléphone invalide')
            else:
                worker['phone'] = phone
        else:
            worker['phone'] = ''

        farm_id = self._farm(data, ctx, errors)
        worker['farm_id'] = farm_id

        if _text(data.get('dateAcces')):
            entry_date = parse_date(data.get('dateAcces'))
            if entry_date is None:
                warnings.append(f"Format de date d'accès invalide: \"{_text(data.get('dateAcces'))}\" - ignoré")
            worker['entry_date'] = entry_date

        self._room(data, worker, ctx, warnings)

        supervisor_name = _text(data.get('superviseur'))
        if supervisor_name:
            supervisor = ctx.supervisor_for(supervisor_name)
            if supervisor is None:
                warnings.append(f'Superviseur "{supervisor_name}" non trouvé - ignoré')
            worker['supervisor_id'] = supervisor.id if supervisor else None

        worker['allocated_items'] = self._equipment(data, worker, ctx, errors, warnings)

        if cin:
            duplicate = ctx.existing_by_cin.get(cin.lower())
            if duplicate is not None:
                status = 'actif' if duplicate.status == 'actif' else 'inactif'
                errors.append(f"Travailleur avec CIN {cin} existe déjà: {duplicate.name} ({status})")
            elif cin.lower() in ctx.seen_cins:
                errors.append(f"CIN {cin} en double dans le fichier (ligne {ctx.seen_cins[cin.lower()]})")
            else:
                ctx.seen_cins[cin.lower()] = row_index

        worker['status'] = 'actif'
        if not worker.get('entry_date'):
            worker['entry_date'] = today

        is_valid = not errors
        return schemas.ImportRowResult(
            row=row_index,
            data=schemas.ImportedWorker(**worker) if is_valid else None,
            errors=errors,
            warnings=warnings,
            is_valid=is_valid,
        )

    @staticmethod
    def _age(data: Dict[str, Any], worker: Dict[str, Any], errors: List[str], today: date) -> Optional[int]:
        """Age from the birth date when given, else from the age column."""
        if _text(data.get('dateNaissance')):
            birth_date = parse_date(data.get('dateNaissance'))
            if birth_date is None:
                errors.append('Date de naissance invalide (format: YYYY-MM-DD)')
                return None
            worker['birth_date'] = birth_date
            worker['birth_year'] = birth_date.year
            return compute_age(birth_date, today)

        raw_age = data.get('age')
        if isinstance(raw_age, (int, float)) and not isinstance(raw_age, bool):
            age = int(raw_age)
        else:
            digits = re.sub(r'[^\d]', '', _text(raw_age))
            if not digits:
                return None
            age = int(digits)
        worker['birth_year'] = today.year - age
        return age

    @staticmethod
    def _farm(data: Dict[str, Any], ctx: _ImportContext, errors: List[str]) -> Optional[uuid.UUID]:
        farm_value = _text(data.get('ferme'))
        if not farm_value:
            if ctx.user_farm_id is None:
                errors.append('Ferme requise')
            return ctx.user_farm_id

        farm = ctx.farm_for(farm_value)
        if farm is None:
            errors.append(f'Ferme "{farm_value}" non trouvée')
            return None
        if not ctx.is_superadmin and ctx.user_farm_id is not None and farm.id != ctx.user_farm_id:
            user_farm_name = next((f.name for f in ctx.farms if f.id == ctx.user_farm_id), 'votre ferme')
            errors.append(
                f"⚠️ Accès refusé: Vous ne pouvez importer que vers {user_farm_name}. Ligne contient: {farm.name}"
            )
            return None
        return farm.id

    @staticmethod
    def _room(data: Dict[str, Any], worker: Dict[str, Any], ctx: _ImportContext, warnings: List[str]) -> None:
        number = _text(data.get('chambre'))
        worker['room_number'] = None
        worker['sector'] = None
        if not (number and worker.get('farm_id') and worker.get('gender')):
            return
        genre = occupancy_service.genre_for(worker['gender'])
        if ctx.room(worker['farm_id'], number, genre) is not None:
            worker['room_number'] = number
            worker['sector'] = GENRE_SECTOR[genre]
            return
        existing = ctx.room(worker['farm_id'], number)
        if existing is not None:
            warnings.append(
                f'Chambre "{number}" existe mais est pour {existing.gender}, pas pour {genre} - assignation supprimée'
            )
        else:
            warnings.append(f'Chambre "{number}" non trouvée dans cette ferme - assignation supprimée')

    @staticmethod
    def _equipment(
        data: Dict[str, Any],
        worker: Dict[str, Any],
        ctx: _ImportContext,
        errors: List[str],
        warnings: List[str],
    ) -> List[Dict[str, Any]]:
        allocated = []
        for key, label in EQUIPMENT_COLUMNS:
            raw = data.get(key)
            value = _text(raw).lower()
            if value in YES_VALUES:
                worker[key] = 'oui'
                stock = ctx.stock_for(worker.get('farm_id'), key)
                if stock is None or (stock.quantity or 0) <= 0:
                    errors.append(f'Stock {label} insuffisant sur cette ferme')
                    continue
                allocated.append({
                    'id': '',
                    'item_name': label,
                    'allocated_at': datetime.now(UTC),
                    'allocated_by': IMPORT_ALLOCATOR,
                    'stock_item_id': str(stock.id),
                    'farm_id': str(worker['farm_id']),
                    'status': 'allocated',
                })
            elif value in NO_VALUES:
                worker[key] = 'non'
            elif value:
                worker[key] = _text(raw)
                warnings.append(f'Valeur {label} invalide: "{_text(raw)}" - doit être "oui" ou "non"')
            else:
                worker[key] = '-'
        return allocated

    # === Preview / commit ===

    def preview(self, raw_rows: Iterable[Dict[str, Any]], actor: models.User) -> schemas.ImportPreview:
        ctx = _ImportContext(self.db, actor)
        results = [self.validate_row(normalize_row(row), index, ctx) for index, row in enumerate(raw_rows, start=1)]
        valid = sum(1 for r in results if r.is_valid)
        return schemas.ImportPreview(
            rows=results,
            summary=schemas.ImportSummary(total=len(results), valid=valid, invalid=len(results) - valid),
        )

    def commit(self, raw_rows: Iterable[Dict[str, Any]], actor: models.User) -> schemas.ImportCommitResult:
        """Re-validate the rows and insert the valid ones in a single transaction."""
        preview = self.preview(raw_rows, actor)
        rooms = {(r.farm_id, r.number): r for r in self.db.query(models.Room).all()}
        stock_ids = set()
        created_ids: List[uuid.UUID] = []

        for result in preview.rows:
            if not result.is_valid:
                continue
            data = result.data
            worker_id = uuid.uuid4()
            stamp = int(time.time() * 1000)
            allocated = []
            for item in data.allocated_items:
                entry = item.model_dump(mode='json')
                entry['id'] = f"{worker_id}_{item.item_name}_{stamp}"
                entry['allocated_by'] = str(actor.id)
                allocated.append(entry)
                if item.stock_item_id:
                    stock_ids.add(uuid.UUID(item.stock_item_id))

            worker = models.Worker(
                id=worker_id,
                name=data.name,
                cin=data.cin,
                matricule=data.matricule,
                phone=data.phone,
                gender=data.gender,
                age=data.age,
                birth_year=data.birth_year,
                birth_date=data.birth_date,
                farm_id=data.farm_id,
                room_number=data.room_number,
                sector=data.sector,
                supervisor_id=data.supervisor_id,
                entry_date=data.entry_date,
                status=data.status,
                return_count=0,
                total_work_days=0,
                allocated_items=allocated,
                work_history=[new_period(data.entry_date, data.farm_id, data.room_number, data.sector)],
            )
            self.db.add(worker)
            room = rooms.get((data.farm_id, data.room_number)) if data.room_number else None
            if room is not None:
                occupancy_service.add_worker_to_room(room, worker)
            created_ids.append(worker_id)

        # Allocation is tracked on the worker; stock quantities stay as they are
        if stock_ids:
            for stock in self.db.query(models.StockItem).filter(models.StockItem.id.in_(stock_ids)).all():
                stock.last_updated = models.now_utc()

        if created_ids:
            self.db.commit()
        audit_log(self.db, action=AuditAction.WORKER_IMPORT, target_type='worker', actor_user_id=actor.id,
                  farm_id=actor.farm_id,
                  metadata={'created': len(created_ids), 'skipped': preview.summary.invalid})
        logger.info("Import by %s: %s created, %s skipped", actor.email, len(created_ids), preview.summary.invalid)
        return schemas.ImportCommitResult(
            created=len(created_ids),
            skipped=preview.summary.invalid,
            worker_ids=created_ids,
        )

    # === Workbooks ===

    @staticmethod
    def _save(workbook: Workbook) -> bytes:
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    @classmethod
    def build_template(cls) -> bytes:
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = TEMPLATE_SHEET
        headers = list(TEMPLATE_ROWS[0].keys())
        sheet.append(headers)
        for row in TEMPLATE_ROWS:
            sheet.append([row[h] for h in headers])
        return cls._save(workbook)

    def export_workers(self, workers: Iterable[models.Worker]) -> Tuple[bytes, int]:
        """Workers as an .xlsx sheet; returns the file content and the row count."""
        farms = self.db.query(models.Farm).all()
        supervisors = {s.id: s.name for s in self.db.query(models.Supervisor).all()}
        workbook = Workbook()
        sheet = workbook.active
        sheet.title = 'Ouvriers'
        sheet.append(EXPORT_HEADERS)
        count = 0
        for w in workers:
            sheet.append([
                w.matricule or '',
                w.name,
                w.cin,
                w.phone or '',
                'Homme' if w.gender == 'homme' else 'Femme',
                w.age,
                w.birth_year or (models.today_utc().year - w.age if w.age else None),
                get_farm_name(w.farm_id, farms),
                w.room_number or '',
                w.sector or '',
                supervisors.get(w.supervisor_id, ''),
                w.entry_date.strftime('%d/%m/%Y') if w.entry_date else '',
                w.exit_date.strftime('%d/%m/%Y') if w.exit_date else '',
                get_motif_label(w.exit_reason) if w.exit_reason and w.exit_reason != 'none' else '',
                'Actif' if w.status == 'actif' else 'Inactif',
            ])
            count += 1
        for index, header in enumerate(EXPORT_HEADERS, start=1):
            width = max([len(header)] + [len(str(c.value or '')) for c in sheet[get_column_letter(index)]])
            sheet.column_dimensions[get_column_letter(index)].width = min(max(10, width + 2), 40)
        return self._save(workbook), count
