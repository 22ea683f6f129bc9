"""
Examination service: grade scales, assessment schemas, scores and results
"""

from typing import Any, Dict, List, Optional

from schoolerp.models import (
    db, User, Student, GradeScale, GradeRange, AssessmentSchema, AssessmentComponent, AssessmentScore
)
from schoolerp.services.assessment_calculator import calculate_result, find_overlap, grade_for
from schoolerp.services.tenant_service import TenantService
from schoolerp.utils.exceptions import NotFoundError, ValidationError
from schoolerp.utils.helpers import log_info


class ExaminationService:
    """Examination service class"""

    # Grade scales

    @staticmethod
    def create_grade_scale(data: Dict[str, Any], user: User) -> GradeScale:
        branch_id = TenantService.require_branch_id(user, data.get('branch_id'))
        ranges = data.get('ranges') or []
        overlap = find_overlap(ranges)
        if overlap:
            raise ValidationError(overlap)

        scale = GradeScale(branch_id=branch_id, name=data['name'], description=data.get('description'),
                           is_default=data.get('is_default', False))
        scale.ranges = [GradeRange(**r) for r in ranges]
        if scale.is_default:
            ExaminationService._clear_default(branch_id)
        db.session.add(scale)
        db.session.commit()
        log_info(f"Grade scale {scale.name} created with {len(ranges)} ranges")
        return scale

    @staticmethod
    def list_grade_scales(user: User, branch_id: Optional[int] = None) -> List[Dict[str, Any]]:
        query = GradeScale.query
        branch_id = TenantService.resolve_branch_id(user, branch_id)
        if branch_id is not None:
            query = query.filter_by(branch_id=branch_id)
        return [s.to_dict() for s in query.order_by(GradeScale.name).all()]

    @staticmethod
    def get_grade_scale(scale_id: int, user: User) -> GradeScale:
        return TenantService.get_scoped(GradeScale, scale_id, user, "Grade scale")

    @staticmethod
    def update_grade_scale(scale_id: int, data: Dict[str, Any], user: User) -> GradeScale:
        scale = ExaminationService.get_grade_scale(scale_id, user)
        for key in ('name', 'description'):
            if key in data:
                setattr(scale, key, data[key])
        if data.get('is_default') and not scale.is_default:
            ExaminationService._clear_default(scale.branch_id)
            scale.is_default = True
        elif data.get('is_default') is False:
            scale.is_default = False
        db.session.commit()
        return scale

    @staticmethod
    def delete_grade_scale(scale_id: int, user: User) -> None:
        scale = ExaminationService.get_grade_scale(scale_id, user)
        AssessmentSchema.query.filter_by(grade_scale_id=scale.id).update(
            {'grade_scale_id': None}, synchronize_session=False)
        db.session.delete(scale)
        db.session.commit()

    @staticmethod
    def add_grade_range(scale_id: int, data: Dict[str, Any], user: User) -> GradeRange:
        scale = ExaminationService.get_grade_scale(scale_id, user)
        existing = [r.to_dict() for r in scale.ranges]
        overlap = find_overlap(existing + [data])
        if overlap:
            raise ValidationError(overlap)
        grade_range = GradeRange(scale_id=scale.id, **data)
        db.session.add(grade_range)
        db.session.commit()
        return grade_range

    @staticmethod
    def remove_grade_range(scale_id: int, range_id: int, user: User) -> None:
        scale = ExaminationService.get_grade_scale(scale_id, user)
        grade_range = db.session.get(GradeRange, range_id)
        if grade_range is None or grade_range.scale_id != scale.id:
            raise NotFoundError("Grade range not found")
        db.session.delete(grade_range)
        db.session.commit()

    # Assessment schemas

    @staticmethod
    def create_schema(data: Dict[str, Any], user: User) -> AssessmentSchema:
        branch_id = TenantService.require_branch_id(user, data.get('branch_id'))
        if data.get('grade_scale_id'):
            scale = db.session.get(GradeScale, data['grade_scale_id'])
            if scale is None or scale.branch_id != branch_id:
                raise ValidationError("Grade scale not found for this branch")

        schema = AssessmentSchema(branch_id=branch_id, name=data['name'], class_name=data['class_name'],
                                  subject=data['subject'], term=data.get('term'),
                                  total_marks=data['total_marks'], grade_scale_id=data.get('grade_scale_id'))
        schema.components = [AssessmentComponent(**c) for c in data['components']]
        db.session.add(schema)
        db.session.commit()
        log_info(f"Assessment schema {schema.name} created with {len(schema.components)} components")
        return schema

    @staticmethod
    def list_schemas(user: User, filters: Dict[str, Any]) -> List[Dict[str, Any]]:
        query = AssessmentSchema.query.filter_by(is_active=True)
        branch_id = TenantService.resolve_branch_id(user, filters.get('branch_id'))
        if branch_id is not None:
            query = query.filter_by(branch_id=branch_id)
        for key in ('class_name', 'subject', 'term'):
            if filters.get(key):
                query = query.filter(getattr(AssessmentSchema, key) == filters[key])
        return [s.to_dict() for s in query.order_by(AssessmentSchema.created_at.desc()).all()]

    @staticmethod
    def get_schema(schema_id: int, user: User) -> AssessmentSchema:
        return TenantService.get_scoped(AssessmentSchema, schema_id, user, "Assessment schema")

    @staticmethod
    def validate_schema(schema_id: int, user: User) -> Dict[str, Any]:
        """Check a schema is usable for result calculation"""
        schema = ExaminationService.get_schema(schema_id, user)
        errors = []
        if not schema.components:
            errors.append("Schema has no components")
        for component in schema.components:
            if component.raw_max_score <= 0:
                errors.append(f"{component.name}: raw max score must be positive")
            if component.reduced_score <= 0:
                errors.append(f"{component.name}: reduced score must be positive")
            if component.weightage <= 0:
                errors.append(f"{component.name}: weightage must be positive")
        names = [c.name for c in schema.components]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            errors.append(f"Duplicate component names: {', '.join(duplicates)}")
        if schema.total_marks <= 0:
            errors.append("Total marks must be positive")
        return {'valid': not errors, 'errors': errors}

    @staticmethod
    def delete_schema(schema_id: int, user: User) -> None:
        schema = ExaminationService.get_schema(schema_id, user)
        schema.is_active = False
        db.session.commit()

    # Scores

    @staticmethod
    def enter_score(data: Dict[str, Any], user: User) -> AssessmentScore:
        score = ExaminationService._upsert_score(data, user)
        db.session.commit()
        return score

    @staticmethod
    def enter_scores(entries: List[Dict[str, Any]], user: User) -> List[AssessmentScore]:
        """All-or-nothing bulk score entry"""
        try:
            scores = [ExaminationService._upsert_score(entry, user) for entry in entries]
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        log_info(f"{len(scores)} scores entered")
        return scores

    # Results

    @staticmethod
    def student_result(schema_id: int, student_id: int, user: User) -> Dict[str, Any]:
        schema = ExaminationService.get_schema(schema_id, user)
        student = TenantService.get_scoped(Student, student_id, user, "Student")
        raw = ExaminationService._raw_scores(schema, [student.id]).get(student.id, {})
        return ExaminationService._result(schema, student, raw, ExaminationService._grade_ranges(schema))

    @staticmethod
    def class_results(schema_id: int, user: User, section: Optional[str] = None) -> Dict[str, Any]:
        """Results of every student in the schema's class, ranked by percentage"""
        schema = ExaminationService.get_schema(schema_id, user)
        query = Student.query.filter_by(branch_id=schema.branch_id, class_name=schema.class_name,
                                        is_active=True)
        if section:
            query = query.filter_by(section=section)
        students = query.all()
        raw = ExaminationService._raw_scores(schema, [s.id for s in students])

        ranges = ExaminationService._grade_ranges(schema)
        results = [ExaminationService._result(schema, s, raw.get(s.id, {}), ranges) for s in students]
        results.sort(key=lambda r: r['final_percentage'], reverse=True)
        rank = 0
        previous = None
        for position, result in enumerate(results, start=1):
            if result['final_percentage'] != previous:
                rank = position
                previous = result['final_percentage']
            result['rank'] = rank

        return {'schema': schema.to_dict(), 'results': results}

    @staticmethod
    def _grade_ranges(schema: AssessmentSchema) -> Optional[List[Dict[str, Any]]]:
        """Ranges of the schema's scale, else the branch default; None means the built-in scale"""
        scale = schema.grade_scale or GradeScale.query.filter_by(branch_id=schema.branch_id, is_default=True).first()
        return [r.to_dict() for r in scale.ranges] if scale else None

    @staticmethod
    def _result(schema: AssessmentSchema, student: Student, raw_scores: Dict[int, Any],
                ranges: Optional[List[Dict[str, Any]]]) -> Dict[str, Any]:
        components = [c.to_dict() for c in schema.components]
        result = calculate_result(components, raw_scores, schema.total_marks)
        result.update(grade_for(result['final_percentage'], ranges))
        result['student_id'] = student.id
        result['student_name'] = student.full_name
        return result

    @staticmethod
    def _raw_scores(schema: AssessmentSchema, student_ids: List[int]) -> Dict[int, Dict[int, Any]]:
        component_ids = [c.id for c in schema.components]
        if not component_ids or not student_ids:
            return {}
        scores = AssessmentScore.query.filter(
            AssessmentScore.component_id.in_(component_ids),
            AssessmentScore.student_id.in_(student_ids),
        ).all()
        table: Dict[int, Dict[int, Any]] = {}
        for score in scores:
            table.setdefault(score.student_id, {})[score.component_id] = score.raw_score
        return table

    @staticmethod
    def _upsert_score(data: Dict[str, Any], user: User) -> AssessmentScore:
        component = db.session.get(AssessmentComponent, data['component_id'])
        if component is None or not TenantService.can_access(user, component.schema.branch_id):
            raise NotFoundError(f"Component {data['component_id']} not found")
        student = TenantService.get_scoped(Student, data['student_id'], user, "Student")
        if student.branch_id != component.schema.branch_id:
            raise ValidationError("Student and assessment belong to different branches")
        if data['raw_score'] < 0 or data['raw_score'] > component.raw_max_score:
            raise ValidationError(
                f"Score for {component.name} must be between 0 and {component.raw_max_score}")

        score = AssessmentScore.query.filter_by(student_id=student.id, component_id=component.id).first()
        if score is None:
            score = AssessmentScore(student_id=student.id, component_id=component.id)
            db.session.add(score)
        score.raw_score = data['raw_score']
        score.entered_by_id = user.id
        return score

    @staticmethod
    def _clear_default(branch_id: int) -> None:
        GradeScale.query.filter_by(branch_id=branch_id, is_default=True).update(
            {'is_default': False}, synchronize_session=False)
